"""
The hydronet.sim package contains methods to run hydraulic and water quality
simulations using the water network model.
"""
from hydronet.sim.core import HydraulicSimulator
from hydronet.sim.quality import QualitySimulator
from hydronet.sim.results import SimulationResults, ResultsStatus
from hydronet.sim.solvers import SparseSymmetricSolver
from hydronet.sim.hydraulics import HydraulicSolver
from hydronet.sim.rules import RuleEngine, LinkChange
