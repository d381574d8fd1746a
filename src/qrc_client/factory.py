import logging

from qrc_client.adapters.local_files import LocalFileSink, LocalFileSource
from qrc_client.adapters.qrc_rpc import QrcRpcClient
from qrc_client.adapters.tcp_session import TransportSession
from qrc_client.config import ConnectionConfig
from qrc_client.domain.diagnostics import DiagnosticsEngine, StatusExclusion

logger = logging.getLogger(__name__)


def create_session(config: ConnectionConfig) -> TransportSession:
    return TransportSession(config)


def create_client(config: ConnectionConfig, source: LocalFileSource | None = None) -> QrcRpcClient:
    return QrcRpcClient(
        config,
        session_factory=lambda: create_session(config),
        source=source or LocalFileSource(),
    )


def create_status_exclusions(config: ConnectionConfig) -> list[StatusExclusion]:
    return [StatusExclusion.from_dict(rule) for rule in config.status_exclusions]


def create_diagnostics(config: ConnectionConfig, client: QrcRpcClient | None = None) -> DiagnosticsEngine:
    exclusions = create_status_exclusions(config)
    logger.debug("Diagnostics using %d status exclusion rule(s)", len(exclusions))
    return DiagnosticsEngine(
        client or create_client(config),
        status_exclusions=exclusions,
        recheck_delay=config.recheck_delay,
    )


def create_sink() -> LocalFileSink:
    return LocalFileSink()
