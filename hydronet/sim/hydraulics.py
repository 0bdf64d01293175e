"""
The hydronet.sim.hydraulics module solves the network equations for a
single point in time with the global gradient algorithm.

.. rubric:: Contents

.. autosummary::

    SolverState
    HydraulicSolver

"""
import enum
import logging
import math

import numpy as np

from hydronet.network.base import LinkStatus, LinkType
from hydronet.network.elements import Junction, Tank, Reservoir, Pipe, HeadPump, PowerPump, Valve
from hydronet.epanet.util import LinkTankStatus
from hydronet.utils.exceptions import ConvergenceFailure, SingularSystem
from .solvers import SparseSymmetricSolver

logger = logging.getLogger(__name__)

GRAVITY = 9.80665
HTOL = 0.00015  # head tolerance (m)
QTOL = 2.83e-6  # flow tolerance (m3/s)
RQTOL = 1.0e-7  # smallest head loss gradient
CBIG = 1.0e8
CSMALL = 1.0e-6
TINY = 1.0e-6
BIG = 1.0e10
WATER_VISCOSITY = 1.0e-6  # kinematic viscosity of water at 20 C (m2/s)
MINOR_LOSS_FACTOR = 8.0 / (GRAVITY * math.pi ** 2)
INIT_VELOCITY = 0.3048  # velocity used to initialize link flows (m/s)
POWER_PUMP_FLOW = 0.0283168  # initial flow of a constant power pump (m3/s)
EMITTER_FLOW = 0.0283168  # initial emitter flow (m3/s)

# Dunlop's interpolation for 2000 < Re < 4000
DW_A8 = 5.74 / 4000.0 ** 0.9
DW_A9 = -5.14214965799e-3

_XHEAD = LinkTankStatus.XHead.value
_TEMPCLOSED = LinkTankStatus.TempClosed.value
_CLOSED = LinkTankStatus.Closed.value
_OPEN = LinkTankStatus.Open.value
_ACTIVE = LinkTankStatus.Active.value
_XFCV = LinkTankStatus.XFCV.value
_XPRESSURE = LinkTankStatus.XPressure.value

_PIPES = (LinkType.CV, LinkType.Pipe)
_CONTROL_VALVES = (LinkType.PRV, LinkType.PSV, LinkType.FCV)


class SolverState(enum.Enum):
    """State of the hydraulic solver within a time step."""
    NotOpen = 0
    Initialized = 1
    Iterating = 2
    Converged = 3
    Failed = 4


def _link_kind(link):
    if isinstance(link, Pipe):
        return LinkType.CV if link.check_valve else LinkType.Pipe
    if isinstance(link, Valve):
        return LinkType[link.valve_type]
    return LinkType.Pump


def _friction_factor(re, erel):
    """Darcy friction factor for turbulent and transitional flow."""
    f = np.empty_like(re)
    turb = re >= 4000.0
    if np.any(turb):
        y1 = erel[turb] / 3.7 + 5.74 / re[turb] ** 0.9
        f[turb] = 0.25 / np.log10(y1) ** 2
    trans = ~turb
    if np.any(trans):
        y2 = erel[trans] / 3.7 + DW_A8
        y3 = -0.86859 * np.log(y2)
        fa = 1.0 / y3 ** 2
        fb = (2.0 + DW_A9 / (y2 * y3)) * fa
        r = re[trans] / 2000.0
        x1 = 7.0 * fa - fb
        x2 = 0.128 - 17.0 * fa + 2.5 * fb
        x3 = -0.128 + 13.0 * fa - (fb + fb)
        x4 = 0.032 - 3.0 * fa + 0.5 * fb
        f[trans] = x1 + r * (x2 + r * (x3 + r * x4))
    return f


class HydraulicSolver(object):
    """
    Gradient method solver for the heads and flows of a network at one
    point in time.

    The solver keeps its state (heads, flows, internal link statuses and
    demand flows) between calls to :meth:`solve`, so each time step starts
    from the solution of the previous one. Tank and reservoir heads are
    fixed for a step; they come from the model when :meth:`update_inputs`
    is called.

    Parameters
    ----------
    wn : WaterNetworkModel
        The network to solve. Its structure must not change while the
        solver is in use.

    Attributes
    ----------
    state : SolverState
    iterations : int
        Trials used by the last call to :meth:`solve`
    relative_error : float
        Relative flow change of the last trial
    max_head_error : float
        Largest head loss error of the last converged trial
    max_flow_change : float
        Largest flow change of the last trial
    """
    def __init__(self, wn):
        self._wn = wn
        self.state = SolverState.NotOpen
        self.iterations = 0
        self.relative_error = 0.0
        self.max_head_error = 0.0
        self.max_flow_change = 0.0
        self._build()

    def _build(self):
        wn = self._wn
        index = wn.index
        hopts = wn.options.hydraulic
        self.index = index
        self.nnodes = index.num_nodes
        self.nlinks = index.num_links
        self.njuncs = index.num_junctions
        self.nodes = [wn.get_node(name) for name in index.node_names]
        self.links = [wn.get_link(name) for name in index.link_names]
        self.start = np.array(index.start, dtype=int)
        self.end = np.array(index.end, dtype=int)
        nj = self.njuncs

        self.elevation = np.array([node.elevation for node in self.nodes], dtype=float)
        self.hmin = np.full(self.nnodes, -BIG)
        self.hmax = np.full(self.nnodes, BIG)
        self.is_tank = np.zeros(self.nnodes, dtype=bool)
        for i in index.tanks:
            tank = self.nodes[i]
            self.is_tank[i] = True
            self.hmin[i] = tank.elevation + tank.min_level
            self.hmax[i] = tank.elevation + tank.max_level

        self.kind = np.array([int(_link_kind(link)) for link in self.links], dtype=int)
        self._pipe_idx = np.flatnonzero(np.isin(self.kind, _PIPES))
        self._pump_idx = np.flatnonzero(self.kind == LinkType.Pump)
        self._valve_idx = np.flatnonzero(self.kind >= LinkType.PRV)

        self.diameter = np.zeros(self.nlinks)
        self.length = np.zeros(self.nlinks)
        self.km = np.zeros(self.nlinks)
        for k in np.concatenate((self._pipe_idx, self._valve_idx)):
            link = self.links[k]
            self.diameter[k] = link.diameter
            self.km[k] = MINOR_LOSS_FACTOR * link.minor_loss / link.diameter ** 4
            if isinstance(link, Pipe):
                self.length[k] = link.length
        self.area = np.pi * self.diameter ** 2 / 4.0

        self._headloss_formula = hopts.headloss
        self._viscosity = WATER_VISCOSITY * hopts.viscosity
        self._rho_g = 1000.0 * GRAVITY * hopts.specific_gravity
        roughness = np.array([self.links[k].roughness for k in self._pipe_idx], dtype=float)
        d = self.diameter[self._pipe_idx]
        L = self.length[self._pipe_idx]
        self._roughness = roughness
        if self._headloss_formula == 'H-W':
            self._r = 10.667 * L / (roughness ** 1.852 * d ** 4.871)
            self._n = 1.852
        elif self._headloss_formula == 'C-M':
            self._r = 10.29 * roughness ** 2 * L / d ** (16.0 / 3.0)
            self._n = 2.0
        else:
            self._r = None
            self._n = 2.0

        self._head_curve = {}
        self._pump_power = {}
        self._pump_q0 = np.zeros(self.nlinks)
        for k in self._pump_idx:
            pump = self.links[k]
            if isinstance(pump, HeadPump):
                A, B, C = pump.get_head_curve_coefficients()
                self._head_curve[k] = (A, B, C)
                flows = [pt[0] for pt in pump.get_pump_curve().points]
                if len(flows) in (1, 3):
                    self._pump_q0[k] = flows[len(flows) // 2]
                elif np.isfinite(pump.max_flow):
                    self._pump_q0[k] = pump.max_flow / 2.0
                else:
                    self._pump_q0[k] = np.mean(flows)
            else:
                self._pump_power[k] = pump.power / self._rho_g
                self._pump_q0[k] = POWER_PUMP_FLOW
        self._is_power_pump = np.zeros(self.nlinks, dtype=bool)
        self._is_power_pump[list(self._pump_power.keys())] = True

        # emitters and pressure dependent demand parameters
        self._qexp = 1.0 / hopts.emitter_exponent
        self.ke = np.zeros(nj)
        self.pmin = np.zeros(nj)
        self.preq = np.zeros(nj)
        self.pexp = np.zeros(nj)
        for i in range(nj):
            junc = self.nodes[i]
            if junc.emitter_coefficient:
                self.ke[i] = max(CSMALL, junc.emitter_coefficient ** (-self._qexp))
            self.pmin[i] = junc.minimum_pressure if junc.minimum_pressure is not None else hopts.minimum_pressure
            self.preq[i] = junc.required_pressure if junc.required_pressure is not None else hopts.required_pressure
            self.pexp[i] = junc.pressure_exponent if junc.pressure_exponent is not None else hopts.pressure_exponent
        self._emitters = np.flatnonzero(self.ke > 0)
        self._pda = hopts.demand_model == 'PDA'

        # one off-diagonal matrix entry per link joining two junctions
        jj = (self.start < nj) & (self.end < nj)
        self._slot = np.full(self.nlinks, -1, dtype=int)
        self._slot[jj] = np.arange(int(jj.sum()))
        self._matrix = SparseSymmetricSolver(nj, self.start[jj], self.end[jj],
                                             row_names=index.node_names[:nj])

        self.head = self.elevation.copy()
        for i in range(nj, self.nnodes):
            if self.nodes[i]._head is not None:
                self.head[i] = self.nodes[i]._head
        self.flow = np.zeros(self.nlinks)
        self.status = np.full(self.nlinks, _OPEN, dtype=int)
        self.setting = np.zeros(self.nlinks)
        self.fixed = np.ones(self.nlinks, dtype=bool)
        self.demand_full = np.zeros(nj)
        self.demand_flow = np.zeros(nj)
        self.emitter_flow = np.zeros(nj)
        self.node_demand = np.zeros(self.nnodes)
        self._pinned = np.zeros(nj, dtype=bool)
        self._isolated = np.zeros(self.nlinks, dtype=bool)
        self._seen_status = [None] * self.nlinks
        self._seen_setting = [None] * self.nlinks
        self._flows_initialized = False

    ### #
    ### Inputs and initial state
    def initialize(self, init_flows=True):
        """
        Reset link statuses from the model and (optionally) the link flows.

        Parameters
        ----------
        init_flows : bool
            Re-initialize the link flows; flows are always initialized the
            first time the solver is used.
        """
        self._sync_link_states(force=True)
        if init_flows or not self._flows_initialized:
            for k in range(self.nlinks):
                self.flow[k] = self._initial_flow(k)
            self.emitter_flow[self._emitters] = EMITTER_FLOW
            self._flows_initialized = True
        self.demand_flow[:] = self.demand_full
        self.state = SolverState.Initialized

    def update_inputs(self, time):
        """
        Load demands and fixed grade heads for a point in time.

        Junction demands follow their patterns, reservoir heads follow their
        head patterns and tank heads are taken from the model.
        """
        mult = self._wn.options.hydraulic.demand_multiplier
        for i in range(self.njuncs):
            self.demand_full[i] = self.nodes[i].demand_timeseries_list.at(time, multiplier=mult)
        self.demand_flow[:] = self.demand_full
        for i in self.index.tanks:
            self.head[i] = self.nodes[i]._head
        for i in self.index.reservoirs:
            self.head[i] = self.nodes[i].head_timeseries.at(time)
        self._sync_link_states()

    def _initial_flow(self, k):
        if self.status[k] <= _CLOSED:
            return 0.0
        if self.kind[k] == LinkType.Pump:
            return self.setting[k] * self._pump_q0[k]
        return self.area[k] * INIT_VELOCITY

    def _sync_link_states(self, force=False):
        """Pick up statuses and settings changed by the user or by controls."""
        for k, link in enumerate(self.links):
            user_status = link._user_status
            setting = link._setting
            if not force and user_status == self._seen_status[k] and setting == self._seen_setting[k]:
                continue
            self._seen_status[k] = user_status
            self._seen_setting[k] = setting
            was_closed = self.status[k] <= _CLOSED
            kind = self.kind[k]
            if kind == LinkType.Pump:
                self.setting[k] = 1.0 if setting is None else float(setting)
                closed = user_status == LinkStatus.Closed or self.setting[k] == 0.0
                self.status[k] = _CLOSED if closed else _OPEN
            elif kind >= LinkType.PRV:
                self.setting[k] = 0.0 if setting is None else float(setting)
                self.fixed[k] = user_status != LinkStatus.Active
                if user_status == LinkStatus.Closed:
                    self.status[k] = _CLOSED
                elif not self.fixed[k] and kind in _CONTROL_VALVES:
                    self.status[k] = _ACTIVE
                else:
                    self.status[k] = _OPEN
            else:
                self.status[k] = _CLOSED if user_status == LinkStatus.Closed else _OPEN
            if self.status[k] <= _CLOSED:
                self.flow[k] = 0.0
            elif was_closed and not force:
                self.flow[k] = self._initial_flow(k)
            logger.debug('link %s reset to status %s, setting %s', link.name,
                         LinkTankStatus(int(self.status[k])).name, self.setting[k])

    ### #
    ### Coefficients
    def _closed_mask(self):
        return (self.status <= _CLOSED) | self._isolated

    def _control_valve_mask(self):
        return np.isin(self.kind, _CONTROL_VALVES) & ~self.fixed

    def _pipe_coeffs(self, idx, sel, P, Y):
        q = self.flow[idx]
        aq = np.abs(q)
        if self._r is None:
            hloss, hgrad = self._dw_headloss(sel, aq)
        else:
            r = self._r[sel]
            hgrad = self._n * r * aq ** (self._n - 1.0)
            hloss = r * aq ** self._n
        km = self.km[idx]
        hloss = hloss + km * aq ** 2
        hgrad = hgrad + 2.0 * km * aq
        small = hgrad < RQTOL
        hgrad[small] = RQTOL
        hloss[small] = RQTOL * aq[small]
        P[idx] = 1.0 / hgrad
        Y[idx] = np.sign(q) * hloss / hgrad

    def _dw_headloss(self, sel, aq):
        d = self.diameter[self._pipe_idx][sel]
        L = self.length[self._pipe_idx][sel]
        e = self._roughness[sel]
        re = 4.0 * aq / (np.pi * d * self._viscosity)
        hloss = np.zeros_like(aq)
        hgrad = np.zeros_like(aq)
        laminar = re <= 2000.0
        klam = 128.0 * self._viscosity * L[laminar] / (GRAVITY * np.pi * d[laminar] ** 4)
        hloss[laminar] = klam * aq[laminar]
        hgrad[laminar] = klam
        turb = ~laminar
        if np.any(turb):
            f = _friction_factor(re[turb], e[turb] / d[turb])
            r = MINOR_LOSS_FACTOR * f * L[turb] / d[turb] ** 5
            hloss[turb] = r * aq[turb] ** 2
            hgrad[turb] = 2.0 * r * aq[turb]
        return hloss, hgrad

    def _pump_coeff(self, k):
        q = max(abs(self.flow[k]), TINY)
        if k in self._pump_power:
            c = self._pump_power[k]
            hgrad = max(c / q ** 2, RQTOL)
            hloss = -c / q
        else:
            A, B, C = self._head_curve[k]
            w = self.setting[k]
            h0 = w ** 2 * A
            r = B * w ** (2.0 - C)
            n = 1.0 if abs(C - 1.0) < TINY else C
            hgrad = max(n * r * q ** (n - 1.0), RQTOL)
            hloss = -h0 + r * q ** n
        return 1.0 / hgrad, hloss / hgrad

    def _valve_open_coeff(self, k, km=None):
        q = self.flow[k]
        if km is None:
            km = self.km[k]
        if km > 0.0:
            hgrad = 2.0 * km * abs(q)
            if hgrad < RQTOL:
                hgrad = RQTOL
                hloss = q * hgrad
            else:
                hloss = q * hgrad / 2.0
            return 1.0 / hgrad, hloss / hgrad
        return 1.0 / RQTOL, q

    def _valve_coeff(self, k):
        kind = self.kind[k]
        if self.fixed[k] or kind in _CONTROL_VALVES:
            return self._valve_open_coeff(k)
        if kind == LinkType.PBV:
            setting = self.setting[k]
            if setting == 0.0 or self.km[k] * self.flow[k] ** 2 > setting:
                return self._valve_open_coeff(k)
            return CBIG, setting * CBIG
        if kind == LinkType.TCV:
            km = MINOR_LOSS_FACTOR * self.setting[k] / self.diameter[k] ** 4
            return self._valve_open_coeff(k, km)
        # GPV: the segment of the head loss curve bracketing the current flow
        q = max(abs(self.flow[k]), TINY)
        r, h0 = self.links[k].headloss_curve.slope_intercept(q)
        r = max(r, TINY)
        p = 1.0 / max(r, RQTOL)
        return p, p * (h0 + r * q) * np.sign(self.flow[k])

    def _link_coeffs(self):
        P = np.zeros(self.nlinks)
        Y = np.zeros(self.nlinks)
        closed = self._closed_mask()
        sel = ~closed[self._pipe_idx]
        if np.any(sel):
            self._pipe_coeffs(self._pipe_idx[sel], sel, P, Y)
        for k in self._pump_idx:
            if not closed[k]:
                P[k], Y[k] = self._pump_coeff(k)
        for k in self._valve_idx:
            if not closed[k]:
                P[k], Y[k] = self._valve_coeff(k)
        return P, Y

    def _emitter_headloss(self, i):
        q = self.emitter_flow[i]
        hgrad = self._qexp * self.ke[i] * np.abs(q) ** (self._qexp - 1.0)
        small = hgrad < RQTOL
        hgrad = np.where(small, RQTOL, hgrad)
        hloss = np.where(small, hgrad * q, hgrad * q / self._qexp)
        return hloss, hgrad

    def _demand_headloss(self, i):
        d = self.demand_flow[i]
        dfull = self.demand_full[i]
        dp = np.maximum(self.preq[i] - self.pmin[i], HTOL)
        n = 1.0 / self.pexp[i]
        r = d / dfull
        hgrad = np.full(len(i), CBIG)
        hloss = CBIG * d
        part = (r > 0.0) & (r < 1.0)
        hgrad[part] = np.maximum(n[part] * dp[part] * r[part] ** (n[part] - 1.0) / dfull[part], RQTOL)
        hloss[part] = hgrad[part] * d[part] / n[part]
        full = r >= 1.0
        hloss[full] = dp[full] + CBIG * (d[full] - dfull[full])
        return hloss, hgrad

    def _pda_junctions(self):
        if not self._pda:
            return np.zeros(0, dtype=int)
        return np.flatnonzero((self.demand_full > 0.0) & ~self._pinned)

    ### #
    ### Matrix assembly
    def _assemble(self, P, Y):
        nj = self.njuncs
        H = self.head
        Aii = np.zeros(nj)
        Aij = np.zeros(int((self._slot >= 0).sum()))
        F = np.zeros(nj)
        X = np.zeros(self.nnodes)

        cvalves = self._control_valve_mask()
        k = np.flatnonzero(~cvalves)
        n1 = self.start[k]
        n2 = self.end[k]
        p = P[k]
        y = Y[k]
        q = self.flow[k]
        np.add.at(X, n1, -q)
        np.add.at(X, n2, q)
        slots = self._slot[k]
        has = slots >= 0
        np.add.at(Aij, slots[has], -p[has])
        j1 = n1 < nj
        j2 = n2 < nj
        np.add.at(Aii, n1[j1], p[j1])
        np.add.at(F, n1[j1], y[j1])
        np.add.at(Aii, n2[j2], p[j2])
        np.add.at(F, n2[j2], -y[j2])
        f1 = ~j1 & j2
        np.add.at(F, n2[f1], p[f1] * H[n1[f1]])
        f2 = ~j2 & j1
        np.add.at(F, n1[f2], p[f2] * H[n2[f2]])

        e = self._emitters
        if len(e):
            hloss, hgrad = self._emitter_headloss(e)
            Aii[e] += 1.0 / hgrad
            F[e] += (hloss + self.elevation[e]) / hgrad
            X[e] -= self.emitter_flow[e]

        i = self._pda_junctions()
        if len(i):
            hloss, hgrad = self._demand_headloss(i)
            Aii[i] += 1.0 / hgrad
            F[i] += (hloss + self.elevation[i] + self.pmin[i]) / hgrad

        X[:nj] -= self.demand_flow
        F += X[:nj]

        for k in np.flatnonzero(cvalves):
            self._assemble_control_valve(k, P, Y, Aii, Aij, F, X)

        if np.any(self._pinned):
            Aii[self._pinned] = 1.0
            F[self._pinned] = self.elevation[:nj][self._pinned]
        return Aii, Aij, F

    def _assemble_control_valve(self, k, P, Y, Aii, Aij, F, X):
        nj = self.njuncs
        n1 = self.start[k]
        n2 = self.end[k]
        kind = self.kind[k]
        active = self.status[k] == _ACTIVE and not self._isolated[k]
        if active and kind == LinkType.PRV:
            hset = self.elevation[n2] + self.setting[k]
            P[k] = 0.0
            Y[k] = self.flow[k] + X[n2]
            F[n2] += hset * CBIG
            Aii[n2] += CBIG
            if X[n2] < 0.0:
                F[n1] += X[n2]
            return
        if active and kind == LinkType.PSV:
            hset = self.elevation[n1] + self.setting[k]
            P[k] = 0.0
            Y[k] = self.flow[k] - X[n1]
            F[n1] += hset * CBIG
            Aii[n1] += CBIG
            if X[n1] > 0.0:
                F[n2] += X[n1]
            return
        if active and kind == LinkType.FCV:
            q = self.setting[k]
            X[n1] -= q
            X[n2] += q
            Y[k] = self.flow[k] - q
            F[n1] -= q
            F[n2] += q
            P[k] = 1.0 / CBIG
        elif self.status[k] <= _CLOSED or self._isolated[k]:
            P[k] = 0.0
            Y[k] = 0.0
            return
        else:
            P[k], Y[k] = self._valve_open_coeff(k)
            dy = Y[k] - self.flow[k]
            if n1 < nj:
                F[n1] += dy
            if n2 < nj:
                F[n2] -= dy
        if self._slot[k] >= 0:
            Aij[self._slot[k]] -= P[k]
        if n1 < nj:
            Aii[n1] += P[k]
        if n2 < nj:
            Aii[n2] += P[k]

    ### #
    ### Flow updates
    def _new_flows(self, P, Y, relax):
        H = self.head
        dh = H[self.start] - H[self.end]
        dq = (Y - P * dh) * relax
        # keep constant power pumps from reversing
        pp = self._is_power_pump & (dq > self.flow)
        dq[pp] = self.flow[pp] / 2.0
        closed = self._closed_mask()
        dq[closed] = self.flow[closed]
        self.flow -= dq
        self.flow[closed] = 0.0
        qsum = np.sum(np.abs(self.flow))
        dqsum = np.sum(np.abs(dq))
        self.max_flow_change = float(np.max(np.abs(dq))) if self.nlinks else 0.0

        e = self._emitters
        if len(e):
            hloss, hgrad = self._emitter_headloss(e)
            dqe = (hloss - H[e] + self.elevation[e]) / hgrad * relax
            self.emitter_flow[e] -= dqe
            qsum += np.sum(np.abs(self.emitter_flow[e]))
            dqsum += np.sum(np.abs(dqe))

        i = self._pda_junctions()
        if len(i):
            hloss, hgrad = self._demand_headloss(i)
            dqd = (hloss - (H[i] - self.elevation[i] - self.pmin[i])) / hgrad * relax
            limit = 0.4 * self.demand_full[i]
            dqd = np.clip(dqd, -limit, limit)
            self.demand_flow[i] -= dqd
            qsum += np.sum(np.abs(self.demand_flow[i]))
            dqsum += np.sum(np.abs(dqd))

        if qsum > self._wn.options.hydraulic.accuracy:
            return dqsum / qsum
        return dqsum

    def _fixed_grade_flows(self):
        self.node_demand[self.njuncs:] = 0.0
        open_links = ~self._closed_mask()
        q = np.where(open_links, self.flow, 0.0)
        inflow = np.zeros(self.nnodes)
        np.add.at(inflow, self.start, -q)
        np.add.at(inflow, self.end, q)
        self.node_demand[self.njuncs:] = inflow[self.njuncs:]
        self.node_demand[:self.njuncs] = self.demand_flow + self.emitter_flow

    ### #
    ### Status checks
    def _cv_status(self, s, dh, q):
        if abs(dh) > HTOL:
            if dh < -HTOL:
                return _CLOSED
            if q < -QTOL:
                return _CLOSED
            return _OPEN
        if q < -QTOL:
            return _CLOSED
        return s

    def _pump_status(self, k, dh):
        if k in self._pump_power:
            hmax = BIG
        else:
            hmax = self.setting[k] ** 2 * self._head_curve[k][0]
        if dh > hmax + HTOL:
            return _XHEAD
        return _OPEN

    def _fcv_status(self, k, s, h1, h2):
        if h1 - h2 < -HTOL:
            return _XFCV
        if self.flow[k] < -QTOL:
            return _XFCV
        if s == _XFCV and self.flow[k] >= self.setting[k]:
            return _ACTIVE
        return s

    def _tank_status(self, k):
        if self.status[k] <= _CLOSED:
            return
        n1 = self.start[k]
        n2 = self.end[k]
        q = self.flow[k]
        if self.is_tank[n1]:
            tank, other = n1, n2
        elif self.is_tank[n2]:
            tank, other = n2, n1
            q = -q
        else:
            return
        h = self.head[tank] - self.head[other]
        is_pump = self.kind[k] == LinkType.Pump
        if self.head[tank] >= self.hmax[tank] - HTOL:
            if is_pump:
                if self.end[k] == tank:
                    self.status[k] = _TEMPCLOSED
            elif self._cv_status(_OPEN, h, q) == _CLOSED:
                self.status[k] = _TEMPCLOSED
        if self.head[tank] <= self.hmin[tank] + HTOL:
            if is_pump:
                if self.start[k] == tank:
                    self.status[k] = _TEMPCLOSED
            elif self._cv_status(_CLOSED, h, q) == _OPEN:
                self.status[k] = _TEMPCLOSED

    def _link_status(self):
        """Check valves, pumps, FCVs and links to full or empty tanks."""
        changed = False
        for k in range(self.nlinks):
            if self._isolated[k]:
                continue
            n1 = self.start[k]
            n2 = self.end[k]
            dh = self.head[n1] - self.head[n2]
            old = self.status[k]
            if old in (_XHEAD, _TEMPCLOSED):
                self.status[k] = _OPEN
            kind = self.kind[k]
            if kind == LinkType.CV:
                self.status[k] = self._cv_status(self.status[k], dh, self.flow[k])
            elif kind == LinkType.Pump and self.status[k] >= _OPEN and self.setting[k] > 0.0:
                self.status[k] = self._pump_status(k, -dh)
            elif kind == LinkType.FCV and not self.fixed[k]:
                self.status[k] = self._fcv_status(k, old, self.head[n1], self.head[n2])
            if self.is_tank[n1] or self.is_tank[n2]:
                self._tank_status(k)
            if old != self.status[k]:
                changed = True
                if self.status[k] <= _CLOSED:
                    self.flow[k] = 0.0
                elif old <= _CLOSED:
                    self.flow[k] = self._initial_flow(k)
                logger.debug('link %s changed from %s to %s', self.links[k].name,
                             LinkTankStatus(int(old)).name, LinkTankStatus(int(self.status[k])).name)
        return changed

    def _prv_status(self, k, s, hset, h1, h2):
        hml = self.km[k] * self.flow[k] ** 2
        q = self.flow[k]
        if s == _ACTIVE:
            if q < -QTOL:
                return _CLOSED
            if h1 - hml < hset - HTOL:
                return _OPEN
            return _ACTIVE
        if s == _OPEN:
            if q < -QTOL:
                return _CLOSED
            if h2 >= hset + HTOL:
                return _ACTIVE
            return _OPEN
        if s == _CLOSED:
            if h1 >= hset + HTOL and h2 < hset - HTOL:
                return _ACTIVE
            if h1 < hset - HTOL and h1 > h2 + HTOL:
                return _OPEN
            return _CLOSED
        if s == _XPRESSURE and q < -QTOL:
            return _CLOSED
        return s

    def _psv_status(self, k, s, hset, h1, h2):
        hml = self.km[k] * self.flow[k] ** 2
        q = self.flow[k]
        if s == _ACTIVE:
            if q < -QTOL:
                return _CLOSED
            if h2 + hml > hset + HTOL:
                return _OPEN
            return _ACTIVE
        if s == _OPEN:
            if q < -QTOL:
                return _CLOSED
            if h1 < hset - HTOL:
                return _ACTIVE
            return _OPEN
        if s == _CLOSED:
            if h2 > hset + HTOL and h1 > h2 + HTOL:
                return _OPEN
            if h1 >= hset + HTOL and h1 > h2 + HTOL:
                return _ACTIVE
            return _CLOSED
        if s == _XPRESSURE and q < -QTOL:
            return _CLOSED
        return s

    def _valve_status(self):
        """Status checks for pressure reducing and sustaining valves."""
        changed = False
        for k in self._valve_idx:
            kind = self.kind[k]
            if self.fixed[k] or self._isolated[k] or kind not in (LinkType.PRV, LinkType.PSV):
                continue
            n1 = self.start[k]
            n2 = self.end[k]
            s = self.status[k]
            if kind == LinkType.PRV:
                hset = self.elevation[n2] + self.setting[k]
                new = self._prv_status(k, s, hset, self.head[n1], self.head[n2])
            else:
                hset = self.elevation[n1] + self.setting[k]
                new = self._psv_status(k, s, hset, self.head[n1], self.head[n2])
            if new != s:
                self.status[k] = new
                if new <= _CLOSED:
                    self.flow[k] = 0.0
                changed = True
        return changed

    def _bad_valve(self, rows):
        """Take an active control valve next to a singular row out of service."""
        rows = set(int(r) for r in rows)
        for k in self._valve_idx:
            if self.kind[k] not in _CONTROL_VALVES or self.status[k] != _ACTIVE:
                continue
            if self.start[k] in rows or self.end[k] in rows:
                self.status[k] = _XFCV if self.kind[k] == LinkType.FCV else _XPRESSURE
                logger.debug('valve %s cannot be active, status set to %s', self.links[k].name,
                             LinkTankStatus(int(self.status[k])).name)
                return True
        return False

    def _pin_island(self, rows):
        """
        Fix the head of isolated junctions with no demand at their elevation.

        Returns False if any of the junctions has a demand.
        """
        rows = np.asarray(rows, dtype=int)
        if np.any(self.demand_full[rows] != 0.0) or np.any(self.ke[rows] > 0.0):
            return False
        self._pinned[rows] = True
        nj = self.njuncs
        touches = np.zeros(self.nlinks, dtype=bool)
        s_j = self.start < nj
        e_j = self.end < nj
        touches[s_j] |= self._pinned[self.start[s_j]]
        touches[e_j] |= self._pinned[self.end[e_j]]
        self._isolated |= touches
        self.flow[self._isolated] = 0.0
        self.head[rows] = self.elevation[rows]
        self.demand_flow[rows] = 0.0
        logger.debug('pinned %d isolated junctions at their elevation', len(rows))
        return True

    ### #
    ### Solution
    def _has_converged(self, relerr):
        hopts = self._wn.options.hydraulic
        if relerr > hopts.accuracy:
            return False
        self._check_balance()
        if hopts.headerror > 0.0 and self.max_head_error > hopts.headerror:
            return False
        if hopts.flowchange > 0.0 and self.max_flow_change > hopts.flowchange:
            return False
        return True

    def _check_balance(self):
        P, Y = self._link_coeffs()
        ok = (~self._closed_mask()) & (P > 0.0)
        ok &= ~(self._control_valve_mask() & (self.status == _ACTIVE))
        if not np.any(ok):
            self.max_head_error = 0.0
            return
        dh = self.head[self.start[ok]] - self.head[self.end[ok]]
        self.max_head_error = float(np.max(np.abs(dh - Y[ok] / P[ok])))

    def solve(self, time=0):
        """
        Solve for heads and flows at the current inputs.

        A singular system caused by isolated junctions without demand is
        retried once with those junctions pinned at their elevation.

        Parameters
        ----------
        time : int
            Simulation time (s), used in messages

        Returns
        -------
        tuple
            (iterations, relative error)

        Raises
        ------
        ConvergenceFailure
            If the trials are exhausted; the solver keeps the last solution
        SingularSystem
            If the equations cannot be solved
        """
        self._pinned[:] = False
        self._isolated[:] = False
        retried = False
        while True:
            try:
                result = self._iterate(time)
                break
            except SingularSystem as e:
                if retried or not self._pin_island(e.rows):
                    self.state = SolverState.Failed
                    raise
                retried = True
        self.state = SolverState.Converged
        return result

    def _iterate(self, time):
        hopts = self._wn.options.hydraulic
        self.state = SolverState.Iterating
        maxtrials = hopts.trials
        extra = 0
        if hopts.unbalanced == 'CONTINUE' and hopts.unbalanced_value:
            extra = hopts.unbalanced_value
        nextcheck = hopts.checkfreq
        relax = 1.0
        frozen = False
        it = 1
        while True:
            P, Y = self._link_coeffs()
            Aii, Aij, F = self._assemble(P, Y)
            try:
                self._matrix.factor(Aii, Aij)
                x = self._matrix.solve(F)
            except SingularSystem as e:
                if self._bad_valve(e.rows):
                    continue
                raise
            self.head[:self.njuncs] = x
            relerr = self._new_flows(P, Y, relax)
            self.iterations = it
            self.relative_error = relerr
            logger.debug('time %d trial %d relative error %.6g', time, it, relerr)

            relax = 1.0
            valve_change = False
            if not frozen:
                if hopts.damplimit > 0.0:
                    if relerr <= hopts.damplimit:
                        relax = 0.6
                        valve_change = self._valve_status()
                else:
                    valve_change = self._valve_status()

            if self._has_converged(relerr):
                if frozen:
                    break
                changed = self._link_status()
                if not (changed or valve_change):
                    break
                nextcheck = it + hopts.checkfreq
            elif not frozen and it <= hopts.maxcheck and it == nextcheck:
                self._link_status()
                nextcheck += hopts.checkfreq

            it += 1
            if it > maxtrials:
                if extra > 0 and not frozen:
                    frozen = True
                    maxtrials += extra
                    logger.debug('time %d: link statuses held fixed for %d extra trials', time, extra)
                else:
                    self._fixed_grade_flows()
                    self.state = SolverState.Failed
                    raise ConvergenceFailure(time, it - 1, relerr)
        self._fixed_grade_flows()
        return it, relerr

    ### #
    ### Results
    def store_results_in_network(self):
        """Copy the current solution to the model's nodes and links."""
        for i, node in enumerate(self.nodes):
            node._head = float(self.head[i])
            node._demand = float(self.node_demand[i])
        for k, link in enumerate(self.links):
            q = float(self.flow[k])
            link._flow = q
            link._headloss = float(self.head[self.start[k]] - self.head[self.end[k]])
            link._internal_status = LinkTankStatus(int(self.status[k]))
            if self.kind[k] == LinkType.Pump:
                link._velocity = 0.0
                gain = -link._headloss
                if self.status[k] <= _CLOSED or q <= 0.0 or gain <= 0.0:
                    link._power_used = 0.0
                else:
                    link._power_used = self._rho_g * q * gain / link.get_efficiency(q)
            else:
                link._velocity = abs(q) / self.area[k]

    def clear_network_state(self):
        """Forget the internal statuses reported through the model's links."""
        for link in self.links:
            link._internal_status = None
