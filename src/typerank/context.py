"""Process-wide service wiring.

Everything that talks to the ledger or holds a key is built once here and
handed to the API through ``app.state``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session, sessionmaker

from typerank.core.ledger_config import LedgerConfig, load_ledger_config
from typerank.core.settings import settings
from typerank.db.session import SessionLocal
from typerank.services.achievements import AchievementService
from typerank.services.ingestion import LeaderboardIngestor
from typerank.services.ledger import LedgerClient
from typerank.services.ledger_monitor import LedgerConnectionMonitor
from typerank.services.signing import SigningAuthority

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    ledger_config: LedgerConfig | None
    ledger: LedgerClient
    signer: SigningAuthority
    monitor: LedgerConnectionMonitor
    ingestor: LeaderboardIngestor
    achievements: AchievementService

    async def start(self) -> None:
        """Start health checks and ingestion when the ledger is enabled."""
        if not self.ledger.enabled:
            logger.info("Ledger integration disabled; leaderboard will not ingest")
            return
        await self.monitor.start()
        await self.ingestor.start()

    async def stop(self) -> None:
        await self.ingestor.stop()
        await self.monitor.stop()
        await self.ledger.close()


def build_app_context(
    ledger_config: LedgerConfig | None = None,
    *,
    session_factory: sessionmaker[Session] | None = None,
    signer: SigningAuthority | None = None,
) -> AppContext:
    """Assemble the services from settings.

    Raises:
        ConfigError: the configured ledger file is missing or malformed.
    """
    if ledger_config is None and settings.ledger_config_path:
        ledger_config = load_ledger_config(settings.ledger_config_path)

    ledger = LedgerClient(ledger_config)
    signer = signer or SigningAuthority.from_settings()
    monitor = LedgerConnectionMonitor(ledger)
    ingestor = LeaderboardIngestor(
        ledger,
        session_factory or SessionLocal,
        source=ledger.source,
    )

    monitor.on_connected(ingestor.attach_live)
    monitor.on_disconnected(ingestor.detach_live)

    return AppContext(
        ledger_config=ledger_config,
        ledger=ledger,
        signer=signer,
        monitor=monitor,
        ingestor=ingestor,
        achievements=AchievementService(ledger if ledger.enabled else None, signer),
    )
