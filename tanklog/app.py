import logging
from dataclasses import dataclass, field
from typing import List, Optional

from tanklog.config.config_loader import get_config, AppConfig
from tanklog.services.auth import GoogleIdentityProvider, JsonFileStorage, SessionManager
from tanklog.services.sheets import RowStore, SheetsTransport
from tanklog.services.tank import (
    EventsService, LivestockService, WaterTestsService, RemindersService, PhotosService, ParameterRangesService,
)

logger = logging.getLogger(__name__)

NOISY_LOGGERS = ("urllib3", "google_auth_oauthlib", "gspread", "google.auth")


def setup_logging(level: str = "INFO"):
    """Configures root logging once for the CLI process."""
    logging.basicConfig(
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        level=getattr(logging, level.upper(), logging.INFO),
    )

    # Set higher logging level for noisy libraries
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    # Get the root logger and set its level
    logging.getLogger().setLevel(getattr(logging, level.upper(), logging.INFO))


@dataclass
class AppContext:
    """Everything one process needs, wired together (replaces module-level globals)."""
    config: AppConfig
    session_manager: SessionManager
    transport: SheetsTransport
    events: EventsService
    livestock: LivestockService
    water_tests: WaterTestsService
    reminders: RemindersService
    photos: PhotosService
    parameter_ranges: ParameterRangesService
    stores: List[RowStore] = field(default_factory=list)

    def invalidate_tables(self, spreadsheet_id: Optional[str] = None):
        """Forgets ensured-table memos, e.g. after the token was rejected."""
        for store in self.stores:
            store.invalidate(spreadsheet_id)


def create_app_context(config: Optional[AppConfig] = None, serialize_mutations: bool = False,
                       session_manager: Optional[SessionManager] = None,
                       transport: Optional[SheetsTransport] = None) -> AppContext:
    """Builds the services for one user. Session restore happens here; nothing touches the network."""
    config = config or get_config()

    if session_manager is None:
        provider = GoogleIdentityProvider(config.google_client_config, config.refresh_token_file)
        session_manager = SessionManager(provider, JsonFileStorage(config.session_file))
    session_manager.hydrate()

    transport = transport or SheetsTransport(session_manager)

    context = AppContext(
        config=config,
        session_manager=session_manager,
        transport=transport,
        events=EventsService(transport, serialize_mutations),
        livestock=LivestockService(transport, serialize_mutations),
        water_tests=WaterTestsService(transport, serialize_mutations),
        reminders=RemindersService(transport, serialize_mutations),
        photos=PhotosService(transport, serialize_mutations),
        parameter_ranges=ParameterRangesService(transport, serialize_mutations),
    )
    context.stores = [
        context.events.store, context.livestock.store, context.water_tests.store,
        context.reminders.store, context.photos.store, context.parameter_ranges.store,
    ]
    transport.add_auth_failure_listener(context.invalidate_tables)
    logger.debug("Application context created.")
    return context
