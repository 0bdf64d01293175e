"""
The hydronet.network.base module includes base classes for network elements
and the network model.

.. rubric:: Contents

.. autosummary::

    Node
    Link
    Registry
    NodeType
    LinkType
    LinkStatus
    AbstractModel

"""
import abc
import enum
import logging
from collections import OrderedDict
from collections.abc import MutableMapping

import six
from six import string_types

from hydronet.utils.ordered_set import OrderedSet

logger = logging.getLogger(__name__)


class AbstractModel(object):
    """
    Base class for water network models.
    """
    pass


class Node(six.with_metaclass(abc.ABCMeta, object)):
    """Base class for nodes.

    For details about the different subclasses, see one of the following:
    :class:`~hydronet.network.elements.Junction`,
    :class:`~hydronet.network.elements.Tank`, and
    :class:`~hydronet.network.elements.Reservoir`

    .. rubric:: Constructor

    This is an abstract class and should not be instantiated directly.

    Parameters
    -----------
    wn : :class:`~hydronet.network.model.WaterNetworkModel`
        WaterNetworkModel object
    name : string
        Name of the node (must be unique among nodes of all types)

    .. rubric:: Read-only simulation results

    The following attributes are read-only. The values are the last values
    committed by a simulation step.

    .. autosummary::

        head
        demand
        pressure
        quality

    """
    def __init__(self, wn, name):
        self._name = name
        self._head = None
        self._demand = None
        self._quality = None
        self._initial_quality = None
        self._tag = None
        self._options = wn._options
        self._node_reg = wn._node_reg
        self._link_reg = wn._link_reg
        self._pattern_reg = wn._pattern_reg
        self._curve_reg = wn._curve_reg

    def __str__(self):
        return self._name

    def __repr__(self):
        return "<Node '{}'>".format(self._name)

    @property
    def head(self):
        """float : (read-only) hydraulic head from the last committed step"""
        return self._head

    @property
    def demand(self):
        """float : (read-only) actual demand (outflow) from the last committed step"""
        return self._demand

    @property
    def pressure(self):
        """float : (read-only) pressure head, head minus elevation"""
        if self._head is None:
            return None
        return self._head - self.elevation

    @property
    def quality(self):
        """float : (read-only) quality from the last committed quality step"""
        return self._quality

    @property
    @abc.abstractmethod
    def node_type(self):
        """str : the node type (read only)"""
        pass

    @property
    def name(self):
        """str : the node name (read only)"""
        return self._name

    @property
    def tag(self):
        """str : a tag or label for the node"""
        return self._tag
    @tag.setter
    def tag(self, tag):
        self._tag = tag

    @property
    def initial_quality(self):
        """float : the initial quality (concentration) of the node"""
        if not self._initial_quality:
            return 0.0
        return self._initial_quality
    @initial_quality.setter
    def initial_quality(self, value):
        if value and not isinstance(value, (int, float)):
            raise ValueError('Initial quality must be a float')
        self._initial_quality = value


class Link(six.with_metaclass(abc.ABCMeta, object)):
    """Base class for links.

    For details about the different subclasses, see one of the following:
    :class:`~hydronet.network.elements.Pipe`,
    :class:`~hydronet.network.elements.Pump`, and
    :class:`~hydronet.network.elements.Valve`

    .. rubric:: Constructor

    This is an abstract class and should not be instantiated directly.

    Parameters
    ----------
    wn : :class:`~hydronet.network.model.WaterNetworkModel`
        WaterNetworkModel object
    link_name : string
        Name of the link
    start_node_name : string
        Name of the start node
    end_node_name : string
        Name of the end node

    .. rubric:: Read-only simulation results

    .. autosummary::

        flow
        headloss
        velocity
        quality
        status
        setting

    """
    def __init__(self, wn, link_name, start_node_name, end_node_name):
        self._options = wn._options
        self._node_reg = wn._node_reg
        self._link_reg = wn._link_reg
        self._pattern_reg = wn._pattern_reg
        self._curve_reg = wn._curve_reg
        self._link_name = link_name
        # Set and register the end nodes
        self._start_node = self._node_reg[start_node_name]
        self._node_reg.add_usage(start_node_name, (link_name, self.link_type))
        self._end_node = self._node_reg[end_node_name]
        self._node_reg.add_usage(end_node_name, (link_name, self.link_type))
        self._initial_status = LinkStatus.Opened
        self._initial_setting = None
        self._tag = None
        # Model state variables
        self._user_status = LinkStatus.Opened
        self._internal_status = None
        self._setting = None
        self._flow = None
        self._headloss = None
        self._velocity = None
        self._quality = None

    def __str__(self):
        return self._link_name

    def __repr__(self):
        return "<Link '{}'>".format(self._link_name)

    @property
    def link_type(self):
        """str: the link type (read only)"""
        return 'Link'

    @property
    def initial_status(self):
        """LinkStatus: the initial status (Opened, Closed, Active) of the link"""
        return self._initial_status
    @initial_status.setter
    def initial_status(self, status):
        if not isinstance(status, LinkStatus):
            status = LinkStatus[status]
        self._initial_status = status
        self._user_status = status

    @property
    def initial_setting(self):
        """float: the initial setting for the link (if Active)"""
        return self._initial_setting
    @initial_setting.setter
    def initial_setting(self, setting):
        self._initial_setting = setting
        self._setting = setting

    @property
    def start_node(self):
        """Node: the start node object"""
        return self._start_node

    @property
    def end_node(self):
        """Node: the end node object"""
        return self._end_node

    @property
    def start_node_name(self):
        """str: the name of the start node (read only)"""
        return self._start_node._name

    @property
    def end_node_name(self):
        """str: the name of the end node (read only)"""
        return self._end_node._name

    @property
    def name(self):
        """str: the link name (read only)"""
        return self._link_name

    @property
    def flow(self):
        """float: (read-only) current flow through the link"""
        return self._flow

    @property
    def velocity(self):
        """float: (read-only) current flow velocity"""
        return self._velocity

    @property
    def headloss(self):
        """float: (read-only) current head loss across the link"""
        return self._headloss

    @property
    def quality(self):
        """float: (read-only) current average quality in the link"""
        return self._quality

    @property
    def status(self):
        """LinkStatus: the current status of the link

        While a hydraulic solver is open this reports the status the solver
        settled on (for example a check valve that closed); otherwise it is
        the status set by the user or by a control.
        """
        if self._internal_status is None:
            return self._user_status
        if self._internal_status.is_closed:
            return LinkStatus.Closed
        if self._internal_status.name == "Active":
            return LinkStatus.Active
        return LinkStatus.Opened
    @status.setter
    def status(self, status):
        if not isinstance(status, LinkStatus):
            status = LinkStatus[status]
        self._user_status = status

    @property
    def setting(self):
        """float: the current setting of the link"""
        return self._setting
    @setting.setter
    def setting(self, setting):
        self._setting = setting

    @property
    def tag(self):
        """str: a tag or label for this link"""
        return self._tag
    @tag.setter
    def tag(self, tag):
        self._tag = tag


class Registry(MutableMapping):
    """Base class for registries.

    A registry keeps its objects in insertion order and tracks which other
    objects use each entry, so that an entry still in use cannot be removed.

    Parameters
    ----------
    wn : :class:`~hydronet.network.model.WaterNetworkModel`
        WaterNetworkModel object

    """

    def __init__(self, wn):
        if not isinstance(wn, AbstractModel):
            raise ValueError('Registry must be initialized with a model')
        self._data = OrderedDict()
        self._usage = OrderedDict()

    def _finalize_(self, wn):
        self._options = wn._options
        self._pattern_reg = wn._pattern_reg
        self._curve_reg = wn._curve_reg
        self._node_reg = wn._node_reg
        self._link_reg = wn._link_reg
        self._sources = wn._sources

    def __getitem__(self, key):
        if not key:
            return None
        try:
            return self._data[key]
        except KeyError:
            return self._data[str(key)]

    def __setitem__(self, key, value):
        if not isinstance(key, string_types):
            raise ValueError('Registry keys must be strings')
        self._data[key] = value

    def __delitem__(self, key):
        if key in self._usage and len(self._usage[key]) > 0:
            raise RuntimeError('cannot remove {0} {1}, still used by {2}'.format(
                self.__class__.__name__, key, list(self._usage[key])))
        self._usage.pop(key, None)
        return self._data.pop(key, None)

    def __iter__(self):
        return self._data.__iter__()

    def __len__(self):
        return len(self._data)

    def __call__(self):
        for key, value in self._data.items():
            yield key, value

    def get_usage(self, key):
        """Get the set of items using an object by key.

        Returns
        -------
        OrderedSet of 2-tuples or None
            Set of (name, typestr) of the external objects using the item

        """
        return self._usage.get(key, None)

    def unused(self):
        """Names of objects in the registry that nothing else refers to.

        For nodes this identifies nodes with no links attached.

        Returns
        -------
        set
        """
        return set(self._data.keys()).difference(self._usage.keys())

    def add_usage(self, key, *args):
        """add args to usage[key]"""
        if not key:
            return
        if key not in self._usage:
            self._usage[key] = OrderedSet()
        for arg in args:
            self._usage[key].add(arg)

    def remove_usage(self, key, *args):
        """remove args from usage[key]"""
        if not key or key not in self._usage:
            return
        for arg in args:
            self._usage[key].discard(arg)
        if len(self._usage[key]) < 1:
            self._usage.pop(key)


class NodeType(enum.IntEnum):
    """
    Enum class for node types. The values match the toolkit node type codes.

    .. rubric:: Enum Members

    .. autosummary::

        Junction
        Reservoir
        Tank

    """
    Junction = 0  #: node is a junction
    Reservoir = 1  #: node is a reservoir
    Tank = 2  #: node is a tank

    def __init__(self, val):
        mmap = getattr(self, '_member_map_')
        if self.name != str(self.name).upper():
            mmap[str(self.name).upper()] = self
        if self.name != str(self.name).lower():
            mmap[str(self.name).lower()] = self

    def __str__(self):
        return self.name


class LinkType(enum.IntEnum):
    """
    Enum class for link types. The values match the toolkit link type codes.

    .. rubric:: Enum Members

    .. autosummary::

        CV
        Pipe
        Pump
        PRV
        PSV
        PBV
        FCV
        TCV
        GPV

    """
    CV = 0  #: pipe with a check valve
    Pipe = 1  #: pipe with no check valve
    Pump = 2  #: a pump of any type
    PRV = 3  #: a pressure reducing valve
    PSV = 4  #: a pressure sustaining valve
    PBV = 5  #: a pressure breaker valve
    FCV = 6  #: a flow control valve
    TCV = 7  #: a throttle control valve
    GPV = 8  #: a general purpose valve

    def __init__(self, val):
        mmap = getattr(self, '_member_map_')
        if self.name != str(self.name).upper():
            mmap[str(self.name).upper()] = self
        if self.name != str(self.name).lower():
            mmap[str(self.name).lower()] = self

    def __str__(self):
        return self.name


class LinkStatus(enum.IntEnum):
    """
    Enum class for the status a user (or a control) assigns to a link.

    .. warning::
        This is not the internal status used by the hydraulic solver, which
        is :class:`hydronet.epanet.util.LinkTankStatus`.

    .. rubric:: Enum Members

    .. autosummary::

        Closed
        Opened
        Active
        CV

    """
    Closed = 0  #: pipe/valve/pump is closed
    Open = 1  #: alias for `Opened`
    Opened = 1  #: pipe/valve/pump is open
    Active = 2  #: valve is controlled by its setting
    CV = 3  #: pipe has a check valve

    def __init__(self, val):
        mmap = getattr(self, '_member_map_')
        if self.name != str(self.name).upper():
            mmap[str(self.name).upper()] = self
        if self.name != str(self.name).lower():
            mmap[str(self.name).lower()] = self

    def __str__(self):
        return self.name
