import asyncio
import logging
from dataclasses import dataclass

from qrc_client.adapters.tcp_session import TransportSession
from qrc_client.config import ConnectionConfig
from qrc_client.domain.errors import AuthenticationError, CoreError

logger = logging.getLogger(__name__)

CRITICAL_CHECKS = {"reachable", "authentication"}


@dataclass
class HealthCheckResult:
    name: str
    passed: bool
    detail: str


async def run_startup_checks(
    config: ConnectionConfig,
    session: TransportSession | None = None,
) -> list[HealthCheckResult]:
    results = [_check_credentials_configured(config)]
    results.extend(await _check_session(config, session or TransportSession(config)))

    passed = sum(1 for r in results if r.passed)
    logger.info("Health check: %d/%d passed", passed, len(results))
    for result in results:
        level = logging.INFO if result.passed else logging.WARNING
        symbol = "OK" if result.passed else "FAIL"
        logger.log(level, "  [%s] %s: %s", symbol, result.name, result.detail)

    return results


def has_critical_failures(results: list[HealthCheckResult]) -> bool:
    return any(not r.passed and r.name in CRITICAL_CHECKS for r in results)


def _check_credentials_configured(config: ConnectionConfig) -> HealthCheckResult:
    name = "credentials"
    if config.credentials:
        return HealthCheckResult(name=name, passed=True, detail=f"Logon as '{config.username}'")
    if config.username:
        return HealthCheckResult(name=name, passed=False, detail=f"No password for '{config.username}'")
    return HealthCheckResult(name=name, passed=True, detail="None configured, session will be unauthenticated")


async def _check_session(config: ConnectionConfig, session: TransportSession) -> list[HealthCheckResult]:
    target = f"{config.host}:{config.port}"
    try:
        await asyncio.wait_for(session.connect(), timeout=config.operation_timeout)
    except AuthenticationError as exc:
        return [
            HealthCheckResult(name="reachable", passed=True, detail=f"Connected to {target}"),
            HealthCheckResult(name="authentication", passed=False, detail=str(exc)),
        ]
    except CoreError as exc:
        return [
            HealthCheckResult(name="reachable", passed=False, detail=str(exc)),
            HealthCheckResult(name="authentication", passed=False, detail="Skipped, not connected"),
        ]
    except asyncio.TimeoutError:
        return [
            HealthCheckResult(
                name="reachable", passed=False, detail=f"No answer from {target} within {config.operation_timeout}s"
            ),
            HealthCheckResult(name="authentication", passed=False, detail="Skipped, not connected"),
        ]
    finally:
        await session.close()

    if session.authenticated:
        auth = HealthCheckResult(name="authentication", passed=True, detail="Credentials accepted")
    else:
        auth = HealthCheckResult(name="authentication", passed=True, detail="Skipped (no credentials)")
    return [HealthCheckResult(name="reachable", passed=True, detail=f"Connected to {target}"), auth]
