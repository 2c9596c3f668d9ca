"""
PackageTemplate - deployment hooks called by the Package Deployer host.

The host imports the solutions; the template runs before and after:

    before_import()
        1. Deactivate SLAs (when activate_deactivate_slas is set)

    after_import()
        1. Deactivate processes
        2. Activate processes
        3. Disable SDK steps
        4. Enable SDK steps
        5. Connect connection references
        6. Set default SLAs
        7. Reactivate SLAs (when activate_deactivate_slas is set)

Record-level failures are logged by each step and never stop the next one.
Transport errors propagate to the host.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from pdtemplate.adapters.base import CrmServiceAdapter
from pdtemplate.config import RuntimeSettings, TemplateConfig
from pdtemplate.errors import InvalidArgumentError
from pdtemplate.schemas import BatchOutcome
from pdtemplate.services import (
    BatchMutator,
    ConnectionReferenceDeploymentService,
    NameResolver,
    ProcessActivatorService,
    SdkStepActivatorService,
    SlaDeploymentService,
)


@dataclass
class StepResult:
    """Outcome of one template step. `outcome` is None when the step had nothing to do."""
    step: str
    outcome: Optional[BatchOutcome] = None

    @property
    def is_faulted(self) -> bool:
        return self.outcome is not None and self.outcome.is_faulted


@dataclass
class PhaseReport:
    """Results of the steps run by one hook, in order."""
    phase: str
    steps: list[StepResult] = field(default_factory=list)

    @property
    def faulted_steps(self) -> list[str]:
        return [s.step for s in self.steps if s.is_faulted]


class PackageTemplate:
    """
    Runs the configured deployment steps against a CrmServiceAdapter.

    Args:
        crm_svc: Adapter for the organization service
        config: Template configuration
        settings: Runtime settings from the host (defaults to the environment)
        logger: Logger shared by all services
    """

    def __init__(
        self,
        crm_svc: CrmServiceAdapter,
        config: TemplateConfig,
        settings: Optional[RuntimeSettings] = None,
        logger: Optional[logging.Logger] = None,
    ):
        if crm_svc is None:
            raise InvalidArgumentError("crm_svc is required")
        if config is None:
            raise InvalidArgumentError("config is required")
        self.config = config
        self.settings = settings if settings is not None else RuntimeSettings.from_environ()
        self._logger = logger or logging.getLogger(__name__)

        resolver = NameResolver(crm_svc, self._logger, strict=config.strict_resolution)
        mutator = BatchMutator(crm_svc, self._logger)
        self.processes = ProcessActivatorService(crm_svc, self._logger, resolver, mutator)
        self.sdk_steps = SdkStepActivatorService(crm_svc, self._logger, resolver, mutator)
        self.slas = SlaDeploymentService(crm_svc, self._logger, resolver, mutator)
        self.connection_references = ConnectionReferenceDeploymentService(
            crm_svc, self._logger, resolver, mutator
        )

    @property
    def connection_map(self) -> dict[str, str]:
        """Configured connection map overlaid with the host's runtime settings."""
        merged = {k.lower(): v for k, v in self.config.connection_references.items()}
        merged.update(self.settings.connection_map)
        return merged

    @property
    def connection_owner(self) -> Optional[str]:
        return self.settings.licensed_username or self.config.connection_owner

    def before_import(self) -> PhaseReport:
        """Steps run before the solutions are imported."""
        report = PhaseReport("before_import")
        if self.config.activate_deactivate_slas:
            self._run(report, "deactivate_slas", lambda: self.slas.deactivate(self.config.sla_names))
        return report

    def after_import(self) -> PhaseReport:
        """Steps run after the solutions are imported."""
        report = PhaseReport("after_import")
        cfg = self.config
        self._run(report, "deactivate_processes", lambda: self.processes.deactivate(cfg.processes_to_deactivate))
        self._run(report, "activate_processes", lambda: self.processes.activate(cfg.processes_to_activate))
        self._run(report, "deactivate_sdk_steps", lambda: self.sdk_steps.deactivate(cfg.sdk_steps_to_deactivate))
        self._run(report, "activate_sdk_steps", lambda: self.sdk_steps.activate(cfg.sdk_steps_to_activate))
        self._run(
            report,
            "connect_connection_references",
            lambda: self.connection_references.connect_connection_references(
                self.connection_map, self.connection_owner
            ),
        )
        self._run(report, "set_default_slas", lambda: self.slas.set_defaults(cfg.default_slas))
        if cfg.activate_deactivate_slas:
            self._run(report, "activate_slas", lambda: self.slas.activate(cfg.sla_names))
        return report

    def _run(self, report: PhaseReport, step: str, action: Callable[[], Optional[BatchOutcome]]) -> None:
        self._logger.info(f"Running {report.phase} step: {step}", extra={"step": step})
        outcome = action()
        report.steps.append(StepResult(step, outcome))
        if outcome is not None and outcome.is_faulted:
            self._logger.warning(
                f"Step {step} completed with {len(outcome.faults)} of {len(outcome)} request(s) failed.",
                extra={"step": step},
            )
