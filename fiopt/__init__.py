"""
FIOpt - Financial Independence Projection and Optimization

Projects a monthly investment plan forward, finds the earliest age at
which the accumulated corpus sustains inflation-adjusted withdrawals until
end of life, and searches savings changes that bring that age forward.

Modules
-------
- projection    : Two-regime contribution projection, existing asset growth
- withdrawal    : Withdrawal simulation and sustainability check
- solver        : Earliest sustainable FI age, minimum investment for a target age
- optimization  : Step-up / investment-increase scenarios and their ranking
- advisory      : Local scorer and optional remote recommendation providers
- planner       : Baseline yearly plan and end-to-end runs
- host          : Background execution with stale-run discarding
- cache         : Bounded per-run memo of corpus projections
- serialization : JSON persistence of inputs and results
- config        : Pydantic configuration and environment settings
- utils         : Shared utilities (validation, rates, formatting)

"""

__version__ = "0.1.0"

from .inputs import HealthStatus, PlanningInputs
from .cache import ComputationCache
from .projection import CorpusProjector, ExistingAssetGrower
from .withdrawal import WithdrawalSimulator
from .solver import FIAgeSolver, minimum_investment_for_fi
from .advisory import AdvisoryChain, Difficulty, FallbackScorer, Recommendation
from .optimization import OptimizationResult, OptimizationSolution, ScenarioOptimizer
from .planner import FinancialIndependencePlanner, PlanResult
from .host import ConcurrencyHost
from . import utils
