"""genpatch – idempotent patch engine for regenerated Android project trees"""

__version__ = "0.1.0"

from .bridge import BridgeLimits
from .config import PatchConfig, SigningConfig, load_config
from .locator import BlockBoundaryLocator, BraceCountingLocator, LiteralAwareLocator, get_locator
from .markers import CapabilityMarker, RequestCodeRange
from .orchestrator import PatchOrchestrator, PatchReport, run_patch
from .patchers import (
    LocatorError,
    PatchError,
    PatchResult,
    PatchStatus,
    SigningStatus,
    evaluate_signing,
)
from .upstream import GeneratorError

__all__ = [
    "__version__",
    "BridgeLimits",
    "PatchConfig",
    "SigningConfig",
    "load_config",
    "BlockBoundaryLocator",
    "BraceCountingLocator",
    "LiteralAwareLocator",
    "get_locator",
    "CapabilityMarker",
    "RequestCodeRange",
    "PatchOrchestrator",
    "PatchReport",
    "run_patch",
    "LocatorError",
    "PatchError",
    "PatchResult",
    "PatchStatus",
    "SigningStatus",
    "evaluate_signing",
    "GeneratorError",
]
