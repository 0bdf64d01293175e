"""
The hydronet.network.options module includes simulation options.

All times are integer seconds and all other values are SI.

.. rubric:: Classes

.. autosummary::
    :nosignatures:

    Options
    TimeOptions
    HydraulicOptions
    ReactionOptions
    QualityOptions
    EnergyOptions

"""
import logging

logger = logging.getLogger(__name__)


def _float_or_None(value):
    """Converts a value to a float, but doesn't crash for values of None"""
    if value is not None:
        return float(value)
    return None


def _int_or_None(value):
    """Converts a value to an int, but doesn't crash for values of None"""
    if value is not None:
        return int(value)
    return None


class _OptionsBase(object):
    @classmethod
    def factory(cls, val):
        """Create an options object based on passing in an instance of the object, a dict, or a tuple"""
        if isinstance(val, cls):
            return val
        elif isinstance(val, dict):
            return cls(**val)
        elif isinstance(val, (list, tuple)):
            return cls(*val)
        elif val is None:
            return cls()
        raise ValueError('Unknown type for {0}.factory: {1}'.format(cls.__name__, type(val)))

    def __str__(self):
        return "{}({})".format(self.__class__.__name__, ", ".join(["{}={}".format(k, repr(v)) for k, v in self.__dict__.items()]))
    __repr__ = __str__

    def __iter__(self):
        for k, v in self.__dict__.items():
            if isinstance(v, _OptionsBase):
                v = dict(v)
            yield k, v

    def __getitem__(self, index):
        return self.__dict__[index]

    def __eq__(self, other):
        if other is None: return False
        if not hasattr(other, '__dict__'): return False
        for k in self.__dict__.keys():
            if k not in other.__dict__ or not self.__dict__[k] == other.__dict__[k]: return False
        return True


class TimeOptions(_OptionsBase):
    """
    Options related to simulation and model timing.
    These options are named according to the EPANET 2.2 "Times" settings.

    Parameters
    ----------
    duration : int
        Simulation duration (seconds), by default 0.

    hydraulic_timestep : int >= 1
        Hydraulic timestep (seconds), by default 3600 (one hour).

    quality_timestep : int >= 1
        Water quality timestep (seconds), by default 360 (six minutes).

    rule_timestep : int >= 1
        Rule timestep (seconds), by default 360 (six minutes).

    pattern_timestep : int >= 1
        Pattern timestep (seconds), by default 3600 (one hour).

    pattern_start : int
        Time offset (in seconds) into all patterns at the start of the
        simulation, by default 0.

    report_timestep : int >= 1
        Reporting timestep (seconds), by default 3600 (one hour).

    report_start : int
        Start time of the report (in seconds) from the start of the simulation, by default 0.

    start_clocktime : int
        Time of day (in seconds from midnight) at which the simulation begins, by default 0 (midnight).

    statistic: str
        Statistic applied to reported time series. Options are "AVERAGED",
        "MINIMUM", "MAXIMUM", "RANGE", and "NONE". Defaults to "NONE".

    """
    def __init__(self,
                duration: int = 0,
                hydraulic_timestep: int = 3600,
                quality_timestep: int = 360,
                rule_timestep: int = 360,
                pattern_timestep: int = 3600,
                pattern_start: int = 0,
                report_timestep: int = 3600,
                report_start: int = 0,
                start_clocktime: int = 0,
                statistic: str = 'NONE'):
        self.duration = duration
        self.hydraulic_timestep = hydraulic_timestep
        self.quality_timestep = quality_timestep
        self.rule_timestep = rule_timestep
        self.pattern_timestep = pattern_timestep
        self.pattern_start = pattern_start
        self.report_timestep = report_timestep
        self.report_start = report_start
        self.start_clocktime = start_clocktime
        self.statistic = statistic

    def __setattr__(self, name, value):
        if name == 'statistic':
            value = str.upper(value)
            if value not in ['AVERAGED', 'MINIMUM', 'MAXIMUM', 'RANGE', 'NONE']:
                raise ValueError('Statistic must be one of AVERAGED, MINIMUM, MAXIMUM, RANGE or NONE')
        elif name in {'hydraulic_timestep', 'quality_timestep', 'rule_timestep',
                      'pattern_timestep', 'report_timestep'}:
            try:
                value = max(1, int(value))
            except (TypeError, ValueError):
                raise ValueError('%s must be an integer >= 1' % name)
        elif name in {'duration', 'pattern_start', 'report_start', 'start_clocktime'}:
            try:
                value = int(value)
            except (TypeError, ValueError):
                raise ValueError('%s must be an integer' % name)
            if value < 0:
                raise ValueError('%s must be >= 0' % name)
        else:
            raise AttributeError('%s is not a valid attribute in TimeOptions' % name)
        self.__dict__[name] = value


class HydraulicOptions(_OptionsBase):
    """
    Options related to the hydraulic model.
    These options are named according to the settings in the EPANET "[OPTIONS]"
    section.

    Parameters
    ----------
    headloss : str
        Formula to use for computing head loss through a pipe. Options are "H-W",
        "D-W", and "C-M", by default "H-W".

    hydraulics : str
        Indicates if a hydraulics file should be read in or saved; options are
        ``None``, "USE" and "SAVE", by default ``None``.

    hydraulics_filename : str
        Filename to use if ``hydraulics is not None``, by default ``None``.

    viscosity : float
        Kinematic viscosity of the fluid relative to water at 20 deg C, by default 1.0.

    specific_gravity : float
        Specific gravity of the fluid, by default 1.0.

    pattern : str
        Name of the default pattern for junction demands, by default "1". If
        the pattern does not exist, demands without a pattern are constant.

    demand_multiplier : float
        The demand multiplier adjusts the values of baseline demands for all
        junctions, by default 1.0.

    demand_model : str
        "DD" (demand driven) or "PDD" (pressure dependent), by default "DD".
        Stored as "DDA" or "PDA".

    minimum_pressure : float
        The global minimum nodal pressure for PDD, by default 0.0.

    required_pressure: float
        The global required nodal pressure for PDD, by default 0.07 (m H2O).

    pressure_exponent: float
        The global pressure exponent for PDD, by default 0.5.

    emitter_exponent : float
        The exponent used when computing flow from an emitter, by default 0.5.

    trials : int
        Maximum number of trials used to solve network hydraulics, by default 200.

    accuracy : float
        Convergence criteria for hydraulic solutions, by default 0.001.

    unbalanced : str
        Indicate what happens if a hydraulic solution cannot be reached.
        Options are "STOP" and "CONTINUE", by default "STOP".

    unbalanced_value : int
        Number of additional trials with all link statuses frozen if
        ``unbalanced == "CONTINUE"``, by default ``None``.

    checkfreq : int
        Number of solution trials that pass between status checks, by default 2.

    maxcheck : int
        Number of solution trials after which periodic status checks are
        discontinued, by default 10.

    damplimit : float
        Accuracy value at which solution damping and status checks on PRVs
        and PSVs begin, by default 0 (no damping).

    headerror : float
        Maximum head loss error (m) for any link, by default 0 (off).

    flowchange : float
        Maximum flow change (m3/s) for any link, by default 0 (off).

    """
    _attributes = ('headloss', 'hydraulics', 'hydraulics_filename', 'viscosity', 'specific_gravity',
                   'pattern', 'demand_multiplier', 'demand_model', 'minimum_pressure', 'required_pressure',
                   'pressure_exponent', 'emitter_exponent', 'trials', 'accuracy', 'unbalanced',
                   'unbalanced_value', 'checkfreq', 'maxcheck', 'damplimit', 'headerror', 'flowchange')

    def __init__(self,
                 headloss: str = 'H-W',
                 hydraulics: str = None,
                 hydraulics_filename: str = None,
                 viscosity: float = 1.0,
                 specific_gravity: float = 1.0,
                 pattern: str = '1',
                 demand_multiplier: float = 1.0,
                 demand_model: str = 'DD',
                 minimum_pressure: float = 0.0,
                 required_pressure: float = 0.07,
                 pressure_exponent: float = 0.5,
                 emitter_exponent: float = 0.5,
                 trials: int = 200,
                 accuracy: float = 0.001,
                 unbalanced: str = 'STOP',
                 unbalanced_value: int = None,
                 checkfreq: int = 2,
                 maxcheck: int = 10,
                 damplimit: float = 0,
                 headerror: float = 0,
                 flowchange: float = 0):
        self.headloss = headloss
        self.hydraulics = hydraulics
        self.hydraulics_filename = hydraulics_filename
        self.viscosity = viscosity
        self.specific_gravity = specific_gravity
        self.pattern = pattern
        self.demand_multiplier = demand_multiplier
        self.demand_model = demand_model
        self.minimum_pressure = minimum_pressure
        self.required_pressure = required_pressure
        self.pressure_exponent = pressure_exponent
        self.emitter_exponent = emitter_exponent
        self.trials = trials
        self.accuracy = accuracy
        self.unbalanced = unbalanced
        self.unbalanced_value = unbalanced_value
        self.checkfreq = checkfreq
        self.maxcheck = maxcheck
        self.damplimit = damplimit
        self.headerror = headerror
        self.flowchange = flowchange

    def __setattr__(self, name, value):
        if name not in self._attributes:
            raise AttributeError('%s is not a valid attribute of HydraulicOptions' % name)
        if name == 'headloss':
            value = str.upper(value)
            if value not in ['H-W', 'D-W', 'C-M']:
                raise ValueError('headloss must be one of "H-W", "D-W", or "C-M"')
        elif name == 'hydraulics':
            if value is not None:
                value = str.upper(value)
                if value not in ['USE', 'SAVE']:
                    raise ValueError('hydraulics must be None (off) or one of "USE" or "SAVE"')
        elif name == 'demand_model':
            value = str.upper(value)
            if value not in ['DDA', 'DD', 'PDD', 'PDA']:
                raise ValueError('demand_model must be one of "DD", "DDA", "PDD", or "PDA"')
            if value == 'DD': value = 'DDA'
            if value == 'PDD': value = 'PDA'
        elif name == 'unbalanced':
            value = str.upper(value)
            if value not in ['STOP', 'CONTINUE']:
                raise ValueError('unbalanced must be either "STOP" or "CONTINUE"')
        elif name == 'unbalanced_value':
            try:
                value = _int_or_None(value)
            except (TypeError, ValueError):
                raise ValueError('%s must be an int or None' % name)
        elif name in ['trials', 'checkfreq', 'maxcheck']:
            try:
                value = int(value)
            except (TypeError, ValueError):
                raise ValueError('%s must be an integer' % name)
            if value < 1:
                raise ValueError('%s must be >= 1' % name)
        elif name not in ['pattern', 'hydraulics_filename']:
            try:
                value = float(value)
            except (TypeError, ValueError):
                raise ValueError('%s must be a number' % name)
            if value < 0:
                raise ValueError('%s must be >= 0' % name)
            if name in ['accuracy', 'viscosity', 'specific_gravity', 'emitter_exponent',
                        'pressure_exponent'] and value == 0:
                raise ValueError('%s must be > 0' % name)
        self.__dict__[name] = value


class ReactionOptions(_OptionsBase):
    """
    Options related to water quality reactions.
    From the EPANET "[REACTIONS]" options.

    Parameters
    ----------
    bulk_order : float
        Order of reaction occurring in the bulk fluid, by default 1.0.

    wall_order : float
        Order of reaction occurring at the pipe wall; must be either 0 or 1, by default 1.0.

    tank_order : float
        Order of reaction occurring in the tanks, by default 1.0.

    bulk_coeff : float
        Global reaction coefficient for bulk fluid and tanks (1/s for first
        order), by default 0.0.

    wall_coeff : float
        Global reaction coefficient for pipe walls (m/s for first order),
        by default 0.0.

    limiting_potential : float
        Concentration that bulk reactions approach, by default ``None`` (off).

    roughness_correl : float
        Makes default pipe wall coefficients proportional to pipe roughness,
        by default ``None`` (off).

    .. note::

        Use positive numbers for growth reaction coefficients and negative
        numbers for decay coefficients.

    """
    def __init__(self,
                 bulk_order: float = 1.0,
                 wall_order: float = 1.0,
                 tank_order: float = 1.0,
                 bulk_coeff: float = 0.0,
                 wall_coeff: float = 0.0,
                 limiting_potential: float = None,
                 roughness_correl: float = None):
        self.bulk_order = bulk_order
        self.wall_order = wall_order
        self.tank_order = tank_order
        self.bulk_coeff = bulk_coeff
        self.wall_coeff = wall_coeff
        self.limiting_potential = limiting_potential
        self.roughness_correl = roughness_correl

    def __setattr__(self, name, value):
        if name not in ['bulk_order', 'wall_order', 'tank_order', 'bulk_coeff',
                        'wall_coeff', 'limiting_potential', 'roughness_correl']:
            raise AttributeError('%s is not a valid attribute of ReactionOptions' % name)
        if name not in ['limiting_potential', 'roughness_correl']:
            try:
                value = float(value)
            except (TypeError, ValueError):
                raise ValueError('%s must be a number' % name)
        else:
            try:
                value = _float_or_None(value)
            except (TypeError, ValueError):
                raise ValueError('%s must be a number or None' % name)
        if name == 'wall_order' and value not in (0.0, 1.0):
            raise ValueError('wall_order must be 0 or 1')
        self.__dict__[name] = value


class QualityOptions(_OptionsBase):
    """
    Options related to water quality modeling.

    Parameters
    ----------
    parameter : str
        Type of water quality analysis.  Options are "NONE", "CHEMICAL", "AGE", and
        "TRACE", by default "NONE".

    trace_node : str
        Trace node name if ``parameter == "TRACE"``, by default ``None``.

    chemical_name : str
        Chemical name for "CHEMICAL" analysis, by default "CHEMICAL".

    diffusivity : float
        Molecular diffusivity of the chemical relative to chlorine, by default 1.0.

    tolerance : float
        Concentration difference below which adjacent segments are merged,
        by default 0.01.

    """
    def __init__(self,
                 parameter: str = 'NONE',
                 trace_node: str = None,
                 chemical_name: str = 'CHEMICAL',
                 diffusivity: float = 1.0,
                 tolerance: float = 0.01):
        self.parameter = parameter
        self.trace_node = trace_node
        self.chemical_name = chemical_name
        self.diffusivity = diffusivity
        self.tolerance = tolerance

    def __setattr__(self, name, value):
        if name not in ['parameter', 'trace_node', 'chemical_name', 'diffusivity', 'tolerance']:
            raise AttributeError('%s is not a valid attribute of QualityOptions' % name)
        if name == 'parameter':
            value = 'NONE' if value is None else str.upper(value)
            if value == 'CHEM':
                value = 'CHEMICAL'
            if value not in ['NONE', 'CHEMICAL', 'AGE', 'TRACE']:
                raise ValueError('parameter must be one of "NONE", "CHEMICAL", "AGE", or "TRACE"')
        elif name in ['diffusivity', 'tolerance']:
            try:
                value = float(value)
            except (TypeError, ValueError):
                raise ValueError('%s must be a number' % name)
            if value < 0:
                raise ValueError('%s must be >= 0' % name)
        self.__dict__[name] = value


class EnergyOptions(_OptionsBase):
    """
    Options related to energy calculations.
    From the EPANET "[ENERGY]" settings.

    Parameters
    ----------
    global_efficiency : float
        Global pump efficiency as percent; i.e., 75.0 means 75%,
        by default 75.0. Used by pumps without an efficiency curve.

    """
    def __init__(self, global_efficiency: float = 75.0):
        self.global_efficiency = global_efficiency

    def __setattr__(self, name, value):
        if name != 'global_efficiency':
            raise AttributeError('%s is not a valid attribute of EnergyOptions' % name)
        value = float(value)
        if value <= 0:
            raise ValueError('global_efficiency must be > 0')
        self.__dict__[name] = value


class Options(_OptionsBase):
    """
    Water network model options class.

    Parameters
    ----------
    time : TimeOptions
        Contains all timing options for the scenarios

    hydraulic : HydraulicOptions
        Contains hydraulic solver parameters

    quality : QualityOptions
        Contains water quality simulation options

    reaction : ReactionOptions
        Contains chemical reaction parameters

    energy : EnergyOptions
        Contains parameters for energy calculations

    """
    def __init__(self,
                 time: TimeOptions = None,
                 hydraulic: HydraulicOptions = None,
                 quality: QualityOptions = None,
                 reaction: ReactionOptions = None,
                 energy: EnergyOptions = None):
        self.time = TimeOptions.factory(time)
        self.hydraulic = HydraulicOptions.factory(hydraulic)
        self.quality = QualityOptions.factory(quality)
        self.reaction = ReactionOptions.factory(reaction)
        self.energy = EnergyOptions.factory(energy)

    def __setattr__(self, name, value):
        classes = dict(time=TimeOptions, hydraulic=HydraulicOptions, quality=QualityOptions,
                       reaction=ReactionOptions, energy=EnergyOptions)
        if name in classes:
            if not isinstance(value, (classes[name], dict, tuple, list)):
                raise ValueError('{0} must be a {1} or convertable object'.format(name, classes[name].__name__))
            value = classes[name].factory(value)
        else:
            raise ValueError('%s is not a valid member of Options' % name)
        self.__dict__[name] = value

    def to_dict(self):
        """Dictionary representation of the options"""
        return dict(self)
