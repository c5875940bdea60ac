"""Core orchestrator - sequences one backup run."""
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional
import json
import logging

from ..errors import (
    CredentialError,
    EngineError,
    EngineInstallError,
    EstimationError,
    FatalBootstrapError,
    MountError,
    QuotaParseError,
    QuotaQueryError,
)
from ..models import (
    BackupConfig,
    BatchDecision,
    LocalUsage,
    QuotaSnapshot,
    RunOutcome,
    TransferPlan,
)
from ..protocols import ISecretsProvider, ITransferEngine
from ..services.engine import RcloneEngine
from ..services.estimator import CapacityEstimator
from ..services.mount import MountGuard
from ..services.notifier import Notifier, SummarySchedule, create_mailer, read_local_usage
from ..services.quota import QuotaOracle
from ..services.transfer import TransferExecutor
from ..services.units import format_bytes
from .gate import decide

logger = logging.getLogger(__name__)

_FATAL_SUBJECTS = {
    EngineInstallError: "rclone installation failed",
    CredentialError: "Service account credentials missing",
    MountError: "External drive mount failed",
}


@dataclass(frozen=True)
class Evaluation:
    """Quota, plan and gate decision, before any transfer."""
    decision: BatchDecision
    quota: Optional[QuotaSnapshot] = None
    plan: Optional[TransferPlan] = None


class BackupOrchestrator:
    """
    Orchestrates one quota-gated backup run using injected services.

    Sequence: engine bootstrap -> credentials -> mount -> quota -> estimate
    -> gate -> transfer -> post-run quota -> monthly summary.

    Fatal bootstrap failures are alerted and re-raised for the caller to turn
    into an exit code. Missing data and space vetoes are alerted and end the
    run normally.

    Usage:
        orchestrator = BackupOrchestrator.from_config(config, EnvSecretsProvider())
        outcome = await orchestrator.run()
        raise SystemExit(outcome.exit_code)
    """

    def __init__(
        self,
        config: BackupConfig,
        secrets: ISecretsProvider,
        engine: ITransferEngine,
        notifier: Notifier,
        mount_guard: MountGuard,
        schedule: Optional[SummarySchedule] = None,
        clock: Callable[[], datetime] = datetime.now,
        local_usage: Callable[[Path], LocalUsage] = read_local_usage,
    ):
        self._config = config
        self._secrets = secrets
        self._engine = engine
        self._notifier = notifier
        self._mount_guard = mount_guard
        self._schedule = schedule or SummarySchedule(config.summary_day)
        self._clock = clock
        self._local_usage = local_usage

        self._oracle = QuotaOracle(engine, config.remote_name, clock)
        self._estimator = CapacityEstimator(engine, config.remote_name)
        self._executor = TransferExecutor(engine, config.remote_name, config.limits, config.log_file)

    @classmethod
    def from_config(cls, config: BackupConfig, secrets: ISecretsProvider, **kwargs) -> "BackupOrchestrator":
        """Wire the production services for ``config``."""
        engine = kwargs.pop("engine", None) or RcloneEngine(config.rclone_binary, config.rclone_config)
        notifier = kwargs.pop("notifier", None) or Notifier(create_mailer(config.mail))
        mount_guard = kwargs.pop("mount_guard", None) or MountGuard(config.source_root, config.volume_uuid)
        return cls(config, secrets, engine, notifier, mount_guard, **kwargs)

    # -- bootstrap -----------------------------------------------------------

    async def _configure_remote(self) -> None:
        credential_path = self._secrets.get_credential_path()
        if not credential_path.is_file():
            raise CredentialError(f"Service account file not found at {credential_path}")
        try:
            with open(credential_path, encoding="utf-8") as fh:
                json.load(fh)
        except (OSError, ValueError) as exc:
            raise CredentialError(f"Service account file {credential_path} is not valid JSON: {exc}") from exc
        folder_id = self._secrets.get_remote_folder_id()
        try:
            self._engine.ensure_remote(self._config.remote_name, credential_path, folder_id)
        except (EngineError, OSError, ValueError) as exc:
            raise CredentialError(f"could not configure rclone remote: {exc}") from exc

    async def bootstrap(self, alert: bool = True) -> None:
        """
        Raises:
            FatalBootstrapError: after the alert, if any, has been sent
        """
        try:
            await self._engine.ensure_installed(self._config.auto_install)
            await self._configure_remote()
            await self._mount_guard.ensure_mounted()
        except FatalBootstrapError as exc:
            if alert:
                subject = _FATAL_SUBJECTS.get(type(exc), "Backup bootstrap failed")
                await self._notifier.alert(subject, f"{exc}. Exiting.")
            raise

    # -- decision ------------------------------------------------------------

    async def evaluate(self, alert: bool = True) -> Evaluation:
        """Query quota, estimate the batch and run the gate."""
        quota: Optional[QuotaSnapshot] = None
        plan: Optional[TransferPlan] = None

        try:
            quota = await self._oracle.query()
        except QuotaQueryError as exc:
            logger.error(str(exc))
            if alert:
                await self._notifier.alert("Failed to retrieve storage usage", str(exc))
        except QuotaParseError as exc:
            logger.error(str(exc))
            if alert:
                await self._notifier.alert("Failed to parse storage information", str(exc))

        # Without a quota the batch is vetoed anyway; skip the dry runs.
        if quota is not None:
            try:
                plan = await self._estimator.build_plan(self._config.mappings)
            except EstimationError as exc:
                logger.error(str(exc))
                if alert:
                    await self._notifier.alert("Failed to estimate upload size", str(exc))

        decision = decide(plan.total_required_bytes if plan is not None else None, quota)

        if decision is BatchDecision.INSUFFICIENT_SPACE:
            message = (
                f"Not enough space on {self._config.remote_name}! "
                f"Required: {plan.total_required_bytes} bytes ({format_bytes(plan.total_required_bytes)}), "
                f"Available: {quota.available_bytes} bytes ({format_bytes(quota.available_bytes)})."
            )
            logger.warning(message)
            if alert:
                await self._notifier.alert("Not enough remote storage space", message)
        elif decision.vetoed:
            logger.warning(f"Skipping backup due to missing storage data ({decision.value})")
        else:
            logger.info("Sufficient space available, backup authorized")

        return Evaluation(decision=decision, quota=quota, plan=plan)

    # -- run -----------------------------------------------------------------

    async def _send_summary_if_due(self, decision: BatchDecision, quota: Optional[QuotaSnapshot]) -> bool:
        today = self._clock().date()
        if not self._schedule.is_summary_day(today):
            return False

        if quota is None:
            quota = await self._oracle.snapshot()
        try:
            local = self._local_usage(self._config.source_root)
        except OSError as exc:
            logger.warning(f"Could not read free space of {self._config.source_root}: {exc}")
            local = None
        return await self._notifier.send_summary(quota, local, decision)

    async def run(self) -> RunOutcome:
        """
        Perform one complete run.

        Raises:
            FatalBootstrapError: engine, credential or mount failure
        """
        await self.bootstrap()
        evaluation = await self.evaluate(alert=True)

        results = ()
        quota_after: Optional[QuotaSnapshot] = None
        if evaluation.decision is BatchDecision.AUTHORIZED:
            results = tuple(await self._executor.execute(evaluation.plan, evaluation.decision))
            quota_after = await self._oracle.snapshot()

        summary_sent = await self._send_summary_if_due(
            evaluation.decision, quota_after or evaluation.quota
        )

        return RunOutcome(
            decision=evaluation.decision,
            finished_at=self._clock(),
            plan=evaluation.plan,
            results=results,
            quota_before=evaluation.quota,
            quota_after=quota_after,
            summary_sent=summary_sent,
        )
