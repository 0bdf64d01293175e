from collections.abc import MutableSet
from collections import OrderedDict


class OrderedSet(MutableSet):
    """
    A set that remembers insertion order.

    Registries use it to keep the subsets of junctions, tanks, pumps, etc.
    in the order they were added, which is also the order of the
    network's index space.

    Parameters
    ----------
    iterable: Iterable, optional
        Initial members
    """
    def __init__(self, iterable=None):
        self._data = OrderedDict()
        if iterable is not None:
            self.update(iterable)

    def __contains__(self, item):
        return item in self._data

    def __iter__(self):
        return iter(self._data)

    def __len__(self):
        return len(self._data)

    def add(self, value):
        """Add value to the end of the set (no-op if present)."""
        self._data[value] = None

    def discard(self, value):
        """Remove value if present."""
        self._data.pop(value, None)

    def update(self, iterable):
        for i in iterable:
            self.add(i)

    def index(self, value):
        """
        Position of value in insertion order.

        Raises
        ------
        ValueError
            If value is not a member
        """
        for i, v in enumerate(self._data):
            if v == value:
                return i
        raise ValueError('{0} is not in the set'.format(value))

    def __repr__(self):
        return 'OrderedSet([' + ', '.join(repr(i) for i in self) + '])'

    def __sub__(self, other):
        return OrderedSet(i for i in self if i not in other)
