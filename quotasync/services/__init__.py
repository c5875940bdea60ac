"""Services for quotasync."""
from .engine import RcloneEngine
from .estimator import CapacityEstimator
from .mount import MountGuard
from .notifier import LogMailer, Notifier, SendGridMailer, SummarySchedule
from .quota import QuotaOracle
from .secrets import EnvSecretsProvider, StaticSecretsProvider
from .transfer import TransferExecutor
from .units import SizeUnit, parse_size, to_bytes

__all__ = [
    "RcloneEngine",
    "CapacityEstimator",
    "MountGuard",
    "LogMailer",
    "Notifier",
    "SendGridMailer",
    "SummarySchedule",
    "QuotaOracle",
    "EnvSecretsProvider",
    "StaticSecretsProvider",
    "TransferExecutor",
    "SizeUnit",
    "parse_size",
    "to_bytes",
]
