import asyncio
import logging
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from qrc_client.domain.errors import MultipleMatchError, NoResponseError, ProtocolError
from qrc_client.domain.events import (
    ComponentPersistent,
    ComponentResolved,
    IssuesDetected,
    RestartAttempted,
)
from qrc_client.domain.models import (
    CompletionMode,
    ComponentDescriptor,
    ComponentIssue,
    ControlSnapshot,
    DiagnosticsReport,
)
from qrc_client.domain.requests import ControlValue
from qrc_client.ports.core import CorePort

logger = logging.getLogger(__name__)

SCRIPT_TYPE_MARKERS = ("script", "PLUGIN")
ERROR_COUNT_CONTROL = "script.error.count"
LOG_HISTORY_CONTROL = "log.history"
RELOAD_CONTROL = "reload"
STATUS_TYPE = "Status"
HEALTHY_STATUS_VALUES = frozenset({0, 3})
DETAIL_LIMIT = 30
ELLIPSIS = "..."


@dataclass(frozen=True)
class StatusExclusion:
    """A Status control reading that is reported as a fault but is not one."""

    control: str
    string_contains: str = ""
    component_pattern: str = ""

    def matches(self, component: str, snapshot: ControlSnapshot) -> bool:
        if snapshot.name != self.control:
            return False
        if self.string_contains and self.string_contains not in snapshot.string_value:
            return False
        if self.component_pattern and not re.search(self.component_pattern, component):
            return False
        return True

    @classmethod
    def from_dict(cls, raw: dict[str, str]) -> "StatusExclusion":
        return cls(
            control=raw["control"],
            string_contains=raw.get("string_contains", ""),
            component_pattern=raw.get("component_pattern", ""),
        )


DEFAULT_STATUS_EXCLUSIONS = (StatusExclusion("StreamStatus", "Connected to Encoder"),)


def is_script_component(descriptor: ComponentDescriptor) -> bool:
    return any(marker in descriptor.type for marker in SCRIPT_TYPE_MARKERS)


def truncate_detail(text: str, limit: int = DETAIL_LIMIT) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + ELLIPSIS


def _plain_number(value: float) -> int | float:
    return int(value) if float(value).is_integer() else value


class DiagnosticsEngine:
    def __init__(
        self,
        core: CorePort,
        status_exclusions: tuple[StatusExclusion, ...] | list[StatusExclusion] = DEFAULT_STATUS_EXCLUSIONS,
        detail_limit: int = DETAIL_LIMIT,
        mode: CompletionMode = CompletionMode.AWAIT_QUIESCENCE,
        recheck_delay: float = 0.0,
    ) -> None:
        self._core = core
        self._status_exclusions = tuple(status_exclusions)
        self._detail_limit = detail_limit
        self._mode = mode
        self._recheck_delay = recheck_delay

    async def _script_components(self, component: str | None) -> list[ComponentDescriptor]:
        raw = await self._core.get_components(mode=self._mode)
        if not isinstance(raw, list):
            raise ProtocolError(None, f"Component.GetComponents returned {type(raw).__name__}, expected a list")
        scripts = [
            descriptor
            for descriptor in (ComponentDescriptor.from_wire(item) for item in raw if isinstance(item, dict))
            if is_script_component(descriptor)
        ]
        if component is None:
            return scripts
        matches = [descriptor for descriptor in scripts if descriptor.name == component]
        if len(matches) > 1:
            raise MultipleMatchError(component, len(matches))
        return matches

    async def _controls(self, component: str) -> list[ControlSnapshot]:
        result = await self._core.get_controls(component, mode=self._mode)
        controls = result.get("Controls", []) if isinstance(result, dict) else []
        return [ControlSnapshot.from_wire(control) for control in controls if isinstance(control, dict)]

    async def scan_errors(self, component: str | None = None) -> list[ComponentIssue]:
        issues: list[ComponentIssue] = []
        for descriptor in await self._script_components(component):
            by_name = {snapshot.name: snapshot for snapshot in await self._controls(descriptor.name)}
            count = by_name.get(ERROR_COUNT_CONTROL)
            if count is None or count.numeric_value is None or count.numeric_value <= 0:
                continue
            history = by_name.get(LOG_HISTORY_CONTROL)
            detail = truncate_detail(history.string_value if history else "", self._detail_limit)
            logger.info("Script error: %s reports %d error(s)", descriptor.name, count.numeric_value)
            issues.append(
                ComponentIssue(
                    component=descriptor.name,
                    value=_plain_number(count.numeric_value),
                    detail=detail,
                )
            )
        return issues

    async def scan_statuses(self, component: str | None = None) -> list[ComponentIssue]:
        issues: list[ComponentIssue] = []
        for descriptor in await self._script_components(component):
            for snapshot in await self._controls(descriptor.name):
                if snapshot.type != STATUS_TYPE:
                    continue
                if snapshot.numeric_value is None:
                    logger.debug("Status control %s.%s has no numeric value", descriptor.name, snapshot.name)
                    continue
                if snapshot.numeric_value in HEALTHY_STATUS_VALUES:
                    continue
                if any(rule.matches(descriptor.name, snapshot) for rule in self._status_exclusions):
                    logger.debug(
                        "Ignoring excluded status %s.%s: %s",
                        descriptor.name, snapshot.name, snapshot.string_value,
                    )
                    continue
                logger.info(
                    "Status issue: %s.%s = %s (%s)",
                    descriptor.name, snapshot.name, _plain_number(snapshot.numeric_value), snapshot.string_value,
                )
                issues.append(
                    ComponentIssue(
                        component=descriptor.name,
                        value=_plain_number(snapshot.numeric_value),
                        control=snapshot.name,
                        detail=truncate_detail(snapshot.string_value, self._detail_limit),
                    )
                )
        return issues

    async def restart(self, component: str) -> bool:
        logger.info("Restarting %s", component)
        try:
            await self._core.set_controls(
                [ControlValue(RELOAD_CONTROL, 1)],
                component=component,
                mode=self._mode,
            )
        except (ProtocolError, NoResponseError) as exc:
            logger.warning("Restart of %s was not acknowledged: %s", component, exc)
            return False
        return True

    async def remediate(self, system_label: str, site_label: str, host_label: str) -> DiagnosticsReport:
        errors, statuses = await asyncio.gather(
            self._scan_or_nothing("error", self.scan_errors),
            self._scan_or_nothing("status", self.scan_statuses),
        )
        report = DiagnosticsReport(script_errors=errors, script_statuses=statuses)
        components = report.affected_components
        if not components:
            logger.info("No script issues found on %s", host_label)
            return report

        logger.info(
            "Issues detected on %s: %d error(s), %d status issue(s) across %d component(s)",
            host_label, len(errors), len(statuses), len(components),
        )
        report.audit_events.append(
            IssuesDetected(
                system=system_label,
                site=site_label,
                host=host_label,
                error_count=len(errors),
                status_count=len(statuses),
                components=tuple(components),
                errors=tuple(issue.to_dict() for issue in errors),
                statuses=tuple(issue.to_dict() for issue in statuses),
            )
        )

        for component in components:
            await self._remediate_component(component, report, system_label, site_label, host_label)

        logger.info(
            "Remediation finished on %s: %d persistent error(s), %d persistent status issue(s)",
            host_label, len(report.persistent_errors), len(report.persistent_statuses),
        )
        return report

    async def _scan_or_nothing(
        self, kind: str, scan: Callable[[], Awaitable[list[ComponentIssue]]]
    ) -> list[ComponentIssue]:
        try:
            return await scan()
        except Exception as exc:
            logger.warning("Script %s scan failed, treating as no issues: %s", kind, exc)
            return []

    async def _remediate_component(
        self,
        component: str,
        report: DiagnosticsReport,
        system_label: str,
        site_label: str,
        host_label: str,
    ) -> None:
        error = ""
        try:
            success = await self.restart(component)
        except Exception as exc:
            logger.warning("Restart of %s raised: %s", component, exc)
            success, error = False, str(exc)

        report.audit_events.append(
            RestartAttempted(
                system=system_label,
                site=site_label,
                host=host_label,
                component=component,
                success=success,
                error=error,
            )
        )
        if not success:
            logger.warning("Persistent: %s could not be restarted, keeping original issues", component)
            self._keep_original_issues(component, report)
            return

        if self._recheck_delay > 0:
            await asyncio.sleep(self._recheck_delay)

        # A failing scan cancels its sibling before the next component starts.
        try:
            async with asyncio.TaskGroup() as group:
                errors_task = group.create_task(self.scan_errors(component))
                statuses_task = group.create_task(self.scan_statuses(component))
        except ExceptionGroup as failures:
            logger.warning(
                "Persistent: re-check of %s failed, keeping original issues: %s",
                component, failures.exceptions[0],
            )
            self._keep_original_issues(component, report)
            return
        remaining_errors, remaining_statuses = errors_task.result(), statuses_task.result()

        if remaining_errors or remaining_statuses:
            logger.warning(
                "Persistent: %s still has %d error(s) and %d status issue(s) after restart",
                component, len(remaining_errors), len(remaining_statuses),
            )
            report.persistent_errors.extend(remaining_errors)
            report.persistent_statuses.extend(remaining_statuses)
            report.audit_events.append(
                ComponentPersistent(
                    component=component,
                    error_count=len(remaining_errors),
                    status_count=len(remaining_statuses),
                )
            )
            return

        logger.info("Resolved: %s is healthy after restart", component)
        report.audit_events.append(ComponentResolved(component=component))

    @staticmethod
    def _keep_original_issues(component: str, report: DiagnosticsReport) -> None:
        report.persistent_errors.extend(i for i in report.script_errors if i.component == component)
        report.persistent_statuses.extend(i for i in report.script_statuses if i.component == component)
