"""
The hydronet.sim.quality module contains the water quality simulator,
a Lagrangian transport model that moves segments of water through the
links of the network.

.. rubric:: Contents

.. autosummary::

    Segment
    QualitySimulator

"""
import logging
import math
from collections import deque

import networkx as nx
import numpy as np
import pandas as pd

from hydronet.network.elements import Pipe
from hydronet.epanet.util import MixType, SourceType, LinkTankStatus
from hydronet.utils.exceptions import SimulatorError
from .hydfile import HydraulicsFileReader
from .results import SimulationResults

logger = logging.getLogger(__name__)

DIFFUSIVITY = 1.208e-9  # molecular diffusivity of chlorine in water (m2/s)
VISCOSITY = 1.0e-6
TINY = 1.0e-6
BIG = 1.0e10
QZERO = 1.0e-12


class Segment(object):
    """A volume of water (m3) with a uniform concentration."""
    __slots__ = ('volume', 'concentration')

    def __init__(self, volume, concentration):
        self.volume = volume
        self.concentration = concentration

    def __repr__(self):
        return '<Segment: {}, {}>'.format(self.volume, self.concentration)


class QualitySimulator(object):
    """
    Water quality simulator.

    Parameters
    ----------
    wn : WaterNetworkModel
    hydraulics : HydraulicSimulator, list of HydraulicRecord or str, optional
        The source of the hydraulic solution: a hydraulic simulator that
        has run, its records, or the name of a hydraulics file. If None,
        ``wn.options.hydraulic.hydraulics`` must be ``USE`` and the file
        named by ``hydraulics_filename`` is read.

    Attributes
    ----------
    time : int
        Current quality time (s)
    mass_balance : dict
        ``initial``, ``inflow``, ``outflow``, ``reacted``, ``final`` mass
        and their ``ratio``
    """
    def __init__(self, wn, hydraulics=None):
        self._wn = wn
        self._hydraulics = hydraulics
        self._reader = None
        self._records = None
        self._open = False
        self._initialized = False
        self.time = 0
        self.mass_balance = dict(initial=0.0, inflow=0.0, outflow=0.0, reacted=0.0, final=0.0, ratio=1.0)

    @property
    def is_open(self):
        return self._open

    @property
    def is_initialized(self):
        return self._initialized

    ### #
    ### Setup
    def open(self):
        """Build the link and node data for the current network."""
        wn = self._wn
        index = wn.index
        qopts = wn.options.quality
        self.mode = qopts.parameter
        self.nnodes = index.num_nodes
        self.nlinks = index.num_links
        self.njuncs = index.num_junctions
        self.ntanks = len(index.tanks)
        self.nodes = [wn.get_node(name) for name in index.node_names]
        self.links = [wn.get_link(name) for name in index.link_names]
        self.start = np.array(index.start, dtype=int)
        self.end = np.array(index.end, dtype=int)
        self.trace_node = None
        if self.mode == 'TRACE':
            if qopts.trace_node is None:
                raise SimulatorError('a trace node is required for a TRACE analysis')
            self.trace_node = index.node_index(qopts.trace_node)

        ropts = wn.options.reaction
        self.link_volume = np.zeros(self.nlinks)
        self.diameter = np.zeros(self.nlinks)
        self.length = np.zeros(self.nlinks)
        self.kb = np.zeros(self.nlinks)
        self.kw = np.zeros(self.nlinks)
        headloss = wn.options.hydraulic.headloss
        for k, link in enumerate(self.links):
            if not isinstance(link, Pipe):
                continue
            d = link.diameter
            self.diameter[k] = d
            self.length[k] = link.length
            self.link_volume[k] = math.pi * d ** 2 / 4.0 * link.length
            self.kb[k] = ropts.bulk_coeff if link.bulk_coeff is None else link.bulk_coeff
            if link.wall_coeff is not None:
                self.kw[k] = link.wall_coeff
            elif ropts.roughness_correl:
                self.kw[k] = self._correlated_wall_coeff(ropts.roughness_correl, link, headloss)
            else:
                self.kw[k] = ropts.wall_coeff
        self.tank_kb = dict()
        for i in index.tanks:
            tank = self.nodes[i]
            self.tank_kb[i] = ropts.bulk_coeff if tank.bulk_coeff is None else tank.bulk_coeff

        self.sources = dict()
        for name, source in wn.sources():
            self.sources[index.node_index(source.node_name)] = source

        self._viscosity = VISCOSITY * wn.options.hydraulic.viscosity
        self._diffusivity = DIFFUSIVITY * qopts.diffusivity
        self._sc = self._viscosity / self._diffusivity if self._diffusivity > 0 else 0.0

        hyd = self._hydraulics
        if hyd is None:
            hopts = wn.options.hydraulic
            if hopts.hydraulics != 'USE' or not hopts.hydraulics_filename:
                raise SimulatorError('no hydraulics for water quality analysis')
            hyd = self._hydraulics = hopts.hydraulics_filename
        if isinstance(hyd, str):
            self._reader = HydraulicsFileReader(hyd, wn)
        elif hasattr(hyd, 'records'):
            self._records = hyd.records
        else:
            self._records = hyd
        if self._reader is None and not self._records:
            raise SimulatorError('no hydraulics for water quality analysis')
        self._open = True

    @staticmethod
    def _correlated_wall_coeff(correl, pipe, headloss):
        if headloss == 'H-W':
            return correl / pipe.roughness
        if headloss == 'D-W':
            return correl / abs(math.log(pipe.roughness / pipe.diameter))
        return correl * pipe.roughness

    def init(self, save=False):
        """
        Set initial qualities and segments and reset the mass balance.

        Parameters
        ----------
        save : bool
            Keep quality results at report times
        """
        if not self._open:
            raise SimulatorError('the quality simulator is not open')
        if self._reader is not None:
            self._reader.close()
            self._reader = HydraulicsFileReader(self._hydraulics, self._wn)
            self._record_iter = iter(self._reader)
        else:
            self._record_iter = iter(self._records)
        self._save = save
        self.time = 0
        self._htime = 0
        self._loaded = None
        self._final = False
        self._finished = False
        self.report_times = []
        self._node_report = []
        self._link_report = []

        self.node_quality = np.zeros(self.nnodes)
        for i, node in enumerate(self.nodes):
            if self.mode == 'CHEMICAL':
                self.node_quality[i] = node.initial_quality
        if self.mode == 'TRACE':
            self.node_quality[self.trace_node] = 100.0
        self.flow = np.zeros(self.nlinks)
        self.demand = np.zeros(self.nnodes)
        self.direction = np.ones(self.nlinks, dtype=int)
        self._upstream = self.start.copy()

        # one segment per link at the quality of its downstream node
        self.segments = []
        for k in range(self.nlinks):
            self.segments.append(deque([Segment(self.link_volume[k], self.node_quality[self.end[k]])]))
        self.tank_volume = dict()
        self.tank_segments = dict()
        for i in range(self.njuncs, self.njuncs + self.ntanks):
            tank = self.nodes[i]
            v = tank.get_volume(tank.init_level)
            c = self.node_quality[i]
            self.tank_volume[i] = v
            if tank.mixing_model == MixType.Mix2:
                vmix = tank.mixing_fraction * tank.max_volume
                mix = min(v, vmix)
                self.tank_segments[i] = deque([Segment(mix, c), Segment(v - mix, c)])
            else:
                self.tank_segments[i] = deque([Segment(v, c)])
        self.link_quality = np.array([self._average_quality(k) for k in range(self.nlinks)])

        initial = self._stored_mass()
        self.mass_balance = dict(initial=initial, inflow=0.0, outflow=0.0, reacted=0.0, final=initial, ratio=1.0)
        self._store_in_network()
        self._initialized = True

    ### #
    ### Step interface
    def run(self):
        """
        Load the hydraulic solution when the quality time reaches the start
        of a hydraulic step, and save results at report times.

        Returns
        -------
        int
            The current quality time (s)
        """
        if not self._initialized:
            raise SimulatorError('the quality simulator is not initialized')
        if self.time == self._htime and self._loaded != self.time:
            record = next(self._record_iter, None)
            if record is None or record.time != self.time:
                raise SimulatorError('no hydraulic solution for time {}'.format(self.time))
            self._load(record)
            self._htime = record.time + record.tstep
            self._final = record.tstep == 0
            self._loaded = self.time
            if self._save and self._is_report_time(self.time):
                self._report()
        return self.time

    def next(self):
        """
        Transport quality to the start of the next hydraulic step.

        Returns
        -------
        int
            The length of the step (s); 0 at the end of the run
        """
        if not self._initialized:
            raise SimulatorError('the quality simulator is not initialized')
        hstep = self._htime - self.time
        if self._final or hstep <= 0 or self.time >= self._wn.options.time.duration:
            self._finish()
            return 0
        self._transport(hstep)
        self.time += hstep
        return hstep

    def step(self):
        """
        Advance by one quality time step, loading new hydraulics as needed.

        Returns
        -------
        int
            The simulation time left (s); 0 at the end of the run
        """
        if not self._initialized:
            raise SimulatorError('the quality simulator is not initialized')
        duration = self._wn.options.time.duration
        remaining = self._wn.options.time.quality_timestep
        while remaining > 0 and self.time < duration:
            if self.time == self._htime:
                self.run()
            if self._final:
                break
            dt = min(remaining, self._htime - self.time)
            self._transport(dt)
            self.time += dt
            remaining -= dt
        if self.time == self._htime and self.time <= duration:
            self.run()
        tleft = duration - self.time
        if tleft <= 0 or self._final:
            self._finish()
            return 0
        return tleft

    def close(self):
        if self._reader is not None:
            self._reader.close()
        self._open = False
        self._initialized = False

    def solve(self):
        """
        Run a complete quality simulation.

        Returns
        -------
        SimulationResults
            Node and link ``quality`` at report times
        """
        self.open()
        try:
            self.init(save=True)
            while True:
                self.run()
                if self.next() <= 0:
                    break
            return self.results()
        finally:
            self.close()

    def results(self):
        """SimulationResults with the quality saved at report times."""
        results = SimulationResults()
        results.network_name = self._wn.name
        index = self._wn.index
        results.node['quality'] = pd.DataFrame(np.array(self._node_report).reshape(-1, self.nnodes),
                                               index=self.report_times, columns=index.node_names)
        results.link['quality'] = pd.DataFrame(np.array(self._link_report).reshape(-1, self.nlinks),
                                               index=self.report_times, columns=index.link_names)
        return results.time_statistic(self._wn.options.time.statistic)

    ### #
    ### Hydraulics
    def _is_report_time(self, t):
        topts = self._wn.options.time
        if t < topts.report_start:
            return False
        return (t - topts.report_start) % topts.report_timestep == 0

    def _report(self):
        self.report_times.append(int(self.time))
        self._node_report.append(self.node_quality.copy())
        self._link_report.append(self.link_quality.copy())

    def _load(self, record):
        flow = np.array(record.flow, dtype=float)
        closed = np.array(record.status) <= LinkTankStatus.Closed.value
        flow[closed] = 0.0
        direction = np.where(flow < 0, -1, np.where(flow > 0, 1, self.direction))
        for k in np.flatnonzero(direction != self.direction):
            self.segments[k].reverse()
        self.direction = direction
        self._upstream = np.where(direction > 0, self.start, self.end)
        self._downstream = np.where(direction > 0, self.end, self.start)
        self.flow = flow
        self.demand = np.array(record.demand, dtype=float)

        moving = np.abs(flow) > QZERO
        self._inlinks = [[] for i in range(self.nnodes)]
        self._outlinks = [[] for i in range(self.nnodes)]
        graph = nx.DiGraph()
        graph.add_nodes_from(range(self.nnodes))
        for k in np.flatnonzero(moving):
            up = int(self._upstream[k])
            down = int(self._downstream[k])
            self._outlinks[up].append(k)
            self._inlinks[down].append(k)
            graph.add_edge(up, down)
        condensed = nx.condensation(graph)
        order = []
        for c in nx.topological_sort(condensed):
            order.extend(sorted(condensed.nodes[c]['members']))
        self._order = order
        logger.debug('loaded hydraulics for time %d', record.time)

    ### #
    ### Transport
    def _transport(self, hstep):
        qstep = self._wn.options.time.quality_timestep
        elapsed = 0
        while elapsed < hstep:
            dt = min(qstep, hstep - elapsed)
            t = self.time + elapsed
            elapsed += dt
            if self.mode != 'NONE':
                self._react(dt)
                self._route(dt, t)
        self.link_quality = np.array([self._average_quality(k) for k in range(self.nlinks)])
        self._store_in_network()

    def _draw(self, k, volume):
        """Remove a volume from the downstream end of link k; returns its mass."""
        segs = self.segments[k]
        mass = 0.0
        while volume > 0.0 and segs:
            seg = segs[-1]
            if len(segs) == 1:
                v = volume
            else:
                v = min(seg.volume, volume)
            mass += v * seg.concentration
            volume -= v
            if len(segs) > 1 and v >= seg.volume:
                segs.pop()
            else:
                seg.volume = max(seg.volume - v, 0.0)
        return mass

    def _release(self, k, volume, c):
        """Add a volume of concentration c at the upstream end of link k."""
        segs = self.segments[k]
        tol = self._wn.options.quality.tolerance
        if segs and abs(segs[0].concentration - c) < tol:
            seg = segs[0]
            total = seg.volume + volume
            if total > 0.0:
                seg.concentration = (seg.concentration * seg.volume + c * volume) / total
            seg.volume = total
        else:
            segs.appendleft(Segment(volume, c))

    def _route(self, dt, t):
        mb = self.mass_balance
        outflow_c = self.node_quality.copy()
        for n in self._order:
            volin = 0.0
            massin = 0.0
            for k in self._inlinks[n]:
                v = abs(self.flow[k]) * dt
                if self.link_volume[k] <= 0.0:
                    massin += v * outflow_c[self._upstream[k]]
                else:
                    massin += self._draw(k, v)
                volin += v
            volout = sum(abs(self.flow[k]) * dt for k in self._outlinks[n])

            if n < self.njuncs:
                c, volout = self._junction_quality(n, volin, massin, volout, dt, t)
            elif n < self.njuncs + self.ntanks:
                c = self._tank_quality(n, volin, massin, volout)
            else:
                c = self._reservoir_quality(n)
                mb['outflow'] += massin
            c_out = self._source_quality(n, c, volout, dt, t)
            if n >= self.njuncs + self.ntanks:
                mb['inflow'] += c_out * volout
            else:
                mb['inflow'] += (c_out - c) * volout
            if n < self.njuncs:
                demand_out = max(self.demand[n], 0.0) * dt
                mb['outflow'] += c_out * demand_out

            for k in self._outlinks[n]:
                if self.link_volume[k] > 0.0:
                    self._release(k, abs(self.flow[k]) * dt, c_out)
            outflow_c[n] = c_out
            self.node_quality[n] = c_out

    def _junction_quality(self, n, volin, massin, volout, dt, t):
        external = max(-self.demand[n], 0.0) * dt
        source = self.sources.get(n)
        if external > 0.0 and source is not None and self.mode == 'CHEMICAL' \
                and source.source_type == SourceType.Concen:
            strength = source.strength_timeseries.at(t)
            massin += strength * external
            self.mass_balance['inflow'] += strength * external
        volin += external
        volout += max(self.demand[n], 0.0) * dt
        if volin > 0.0:
            return massin / volin, volout
        return self.node_quality[n], volout

    def _reservoir_quality(self, n):
        if self.mode == 'TRACE':
            return 100.0 if n == self.trace_node else 0.0
        if self.mode == 'AGE':
            return 0.0
        return self.nodes[n].initial_quality

    def _source_quality(self, n, c, volout, dt, t):
        if self.mode == 'TRACE':
            if n == self.trace_node:
                return 100.0
            return c
        if self.mode != 'CHEMICAL':
            return c
        source = self.sources.get(n)
        if source is None or volout <= 0.0:
            return c
        strength = max(source.strength_timeseries.at(t), 0.0)
        stype = source.source_type
        if stype == SourceType.Concen:
            if n < self.njuncs:
                return c
            if n >= self.njuncs + self.ntanks:
                # a reservoir source replaces the reservoir quality
                return strength
            return c + strength
        if stype == SourceType.Mass:
            return c + strength * dt / volout
        if stype == SourceType.Setpoint:
            return c + max(strength - c, 0.0)
        return c + strength

    ### #
    ### Tanks
    def _tank_quality(self, n, volin, massin, volout):
        tank = self.nodes[n]
        mix = tank.mixing_model
        if mix == MixType.Mix2:
            c = self._tank_mix2(n, tank, volin, massin, volout)
        elif mix == MixType.FIFO:
            c = self._tank_fifo(n, volin, massin, volout)
        elif mix == MixType.LIFO:
            c = self._tank_lifo(n, volin, massin, volout)
        else:
            seg = self.tank_segments[n][0]
            vold = seg.volume
            if volin > 0.0:
                seg.concentration = (seg.concentration * vold + massin) / (vold + volin)
            seg.volume = max(0.0, vold + volin - volout)
            c = seg.concentration
        self.tank_volume[n] = sum(seg.volume for seg in self.tank_segments[n])
        return c

    def _tank_mix2(self, n, tank, volin, massin, volout):
        mixzone, stagzone = self.tank_segments[n]
        vmz = tank.mixing_fraction * tank.max_volume
        vnet = volin - volout
        if vnet >= 0.0:
            # overflow of the mixing zone goes to the stagnant zone
            vt = max(0.0, mixzone.volume + vnet - vmz)
            if volin > 0.0:
                mixzone.concentration = (mixzone.concentration * mixzone.volume + massin) / (mixzone.volume + volin)
            if vt > 0.0:
                stagzone.concentration = (stagzone.concentration * stagzone.volume + mixzone.concentration * vt) \
                    / (stagzone.volume + vt)
            mixzone.volume += vnet - vt
            stagzone.volume += vt
        else:
            # the stagnant zone refills the mixing zone while it lasts
            vt = min(stagzone.volume, -vnet)
            if volin + vt > 0.0:
                mixzone.concentration = (mixzone.concentration * mixzone.volume + massin
                                         + stagzone.concentration * vt) / (mixzone.volume + volin + vt)
            stagzone.volume -= vt
            mixzone.volume = max(0.0, mixzone.volume + vnet + vt)
        return mixzone.concentration

    def _tank_fifo(self, n, volin, massin, volout):
        segs = self.tank_segments[n]
        tol = self._wn.options.quality.tolerance
        if volin > 0.0:
            cin = massin / volin
            if segs and abs(segs[-1].concentration - cin) < tol:
                last = segs[-1]
                last.concentration = (last.concentration * last.volume + massin) / (last.volume + volin)
                last.volume += volin
            else:
                segs.append(Segment(volin, cin))
        vsum = 0.0
        wsum = 0.0
        while volout > 0.0 and segs:
            seg = segs[0]
            v = volout if len(segs) == 1 else min(seg.volume, volout)
            vsum += v
            wsum += v * seg.concentration
            volout -= v
            if len(segs) > 1 and v >= seg.volume:
                segs.popleft()
            else:
                seg.volume = max(seg.volume - v, 0.0)
        if vsum > 0.0:
            return wsum / vsum
        return segs[0].concentration

    def _tank_lifo(self, n, volin, massin, volout):
        segs = self.tank_segments[n]
        tol = self._wn.options.quality.tolerance
        vnet = volin - volout
        cin = massin / volin if volin > 0.0 else segs[-1].concentration
        if vnet > 0.0:
            if abs(segs[-1].concentration - cin) < tol:
                top = segs[-1]
                top.concentration = (top.concentration * top.volume + cin * vnet) / (top.volume + vnet)
                top.volume += vnet
            else:
                segs.append(Segment(vnet, cin))
            return cin
        if vnet == 0.0:
            return cin
        # outflow is the inflow plus water drawn from the top of the stack
        vsum = 0.0
        wsum = 0.0
        vdraw = -vnet
        while vdraw > 0.0 and segs:
            seg = segs[-1]
            v = vdraw if len(segs) == 1 else min(seg.volume, vdraw)
            vsum += v
            wsum += v * seg.concentration
            vdraw -= v
            if len(segs) > 1 and v >= seg.volume:
                segs.pop()
            else:
                seg.volume = max(seg.volume - v, 0.0)
        return (wsum + massin) / (vsum + volin)

    ### #
    ### Reactions
    def _bulk_rate(self, c, kb, order):
        if kb == 0.0:
            return 0.0
        climit = self._wn.options.reaction.limiting_potential or 0.0
        if order == 0.0:
            c = 1.0
        elif order < 0.0:
            c1 = climit + np.sign(kb) * c
            if abs(c1) < TINY:
                c1 = math.copysign(TINY, c1)
            c = c / c1
        else:
            if climit == 0.0:
                c1 = c
            else:
                c1 = max(0.0, np.sign(kb) * (climit - c))
            if order == 1.0:
                c = c1
            elif order == 2.0:
                c = c1 * c
            else:
                c = c1 * max(0.0, c) ** (order - 1.0)
        if c < 0.0:
            c = 0.0
        return kb * c

    def _mass_transfer(self, k):
        """Mass transfer coefficient (m/s) of the wall reaction of link k."""
        d = self.diameter[k]
        if self._sc == 0.0:
            return BIG
        area = math.pi * d ** 2 / 4.0
        u = abs(self.flow[k]) / area
        re = u * d / self._viscosity
        if re < 1.0:
            sh = 2.0
        elif re >= 2300.0:
            sh = 0.0149 * re ** 0.88 * self._sc ** 0.333
        else:
            y = d / self.length[k] * re * self._sc
            sh = 3.65 + 0.0668 * y / (1.0 + 0.04 * y ** 0.667)
        return sh * self._diffusivity / d

    def _wall_rate(self, k, c):
        kw = self.kw[k]
        d = self.diameter[k]
        if kw == 0.0 or d == 0.0:
            return 0.0
        kf = self._mass_transfer(k)
        if self._wn.options.reaction.wall_order == 0.0:
            # flux cannot exceed the mass transfer rate
            kf = np.sign(kw) * c * kf
            if abs(kf) < abs(kw):
                kw = kf
            return kw * 4.0 / d
        if kf >= BIG:
            return c * kw * 4.0 / d
        return c * 4.0 / d * kw * kf / (kf + abs(kw))

    def _react(self, dt):
        mb = self.mass_balance
        ropts = self._wn.options.reaction
        age = self.mode == 'AGE'
        if self.mode == 'TRACE':
            return
        for k in range(self.nlinks):
            if self.link_volume[k] <= 0.0:
                continue
            kb = self.kb[k]
            for seg in self.segments[k]:
                c = seg.concentration
                if age:
                    seg.concentration = c + dt
                    continue
                rate = self._bulk_rate(c, kb, ropts.bulk_order) + self._wall_rate(k, c)
                cnew = max(0.0, c + rate * dt)
                mb['reacted'] += (c - cnew) * seg.volume
                seg.concentration = cnew
        for n, segs in self.tank_segments.items():
            kb = self.tank_kb[n]
            for seg in segs:
                c = seg.concentration
                if age:
                    seg.concentration = c + dt
                    continue
                cnew = max(0.0, c + self._bulk_rate(c, kb, ropts.tank_order) * dt)
                mb['reacted'] += (c - cnew) * seg.volume
                seg.concentration = cnew
            if age or kb != 0.0:
                self.node_quality[n] = self._tank_concentration(n)

    def _tank_concentration(self, n):
        segs = self.tank_segments[n]
        mix = self.nodes[n].mixing_model
        if mix == MixType.FIFO:
            return segs[0].concentration
        if mix == MixType.LIFO:
            return segs[-1].concentration
        return segs[0].concentration

    ### #
    ### Bookkeeping
    def _average_quality(self, k):
        segs = self.segments[k]
        vsum = sum(seg.volume for seg in segs)
        if vsum > 0.0:
            return sum(seg.volume * seg.concentration for seg in segs) / vsum
        return self.node_quality[self._upstream[k]]

    def _stored_mass(self):
        mass = 0.0
        for k in range(self.nlinks):
            if self.link_volume[k] > 0.0:
                mass += sum(seg.volume * seg.concentration for seg in self.segments[k])
        for segs in self.tank_segments.values():
            mass += sum(seg.volume * seg.concentration for seg in segs)
        return mass

    def _finish(self):
        if self._finished:
            return
        mb = self.mass_balance
        mb['final'] = self._stored_mass()
        supplied = mb['initial'] + mb['inflow']
        if supplied > 0.0:
            mb['ratio'] = (mb['final'] + mb['outflow'] + mb['reacted']) / supplied
        else:
            mb['ratio'] = 1.0
        self._finished = True
        logger.info('quality mass balance: initial %.6g, inflow %.6g, outflow %.6g, reacted %.6g, final %.6g, '
                    'ratio %.6f', mb['initial'], mb['inflow'], mb['outflow'], mb['reacted'], mb['final'],
                    mb['ratio'])

    def _store_in_network(self):
        for i, node in enumerate(self.nodes):
            node._quality = float(self.node_quality[i])
        for k, link in enumerate(self.links):
            link._quality = float(self.link_quality[k])
