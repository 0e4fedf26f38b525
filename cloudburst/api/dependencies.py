"""
Service Container and FastAPI Dependencies
Wires the store and the services from the application configuration
"""
import logging
from typing import Optional

from cloudburst.config.app_config import AppConfig, AppConfigLoader
from cloudburst.core.error_handling import ConfigurationError
from cloudburst.services.activity.activity_log import ActivityLog
from cloudburst.services.admin.data_admin import DataAdmin
from cloudburst.services.alerts.alert_dispatcher import AlertDispatcher
from cloudburst.services.contacts.contact_registry import ContactRegistry
from cloudburst.services.history.history_service import HistoryService
from cloudburst.services.mapping.dashboard import DashboardService
from cloudburst.services.notification.notification_service import NotificationService
from cloudburst.services.notification.sms_client import SMSClient
from cloudburst.services.prediction.prediction_service import PredictionService
from cloudburst.services.registry.node_registry import NodeRegistry
from cloudburst.services.settings.settings_service import SettingsService
from cloudburst.services.simulator.data_simulator import DataSimulator
from cloudburst.store import InMemoryStore, RealtimeStore, SQLiteStore

logger = logging.getLogger(__name__)


def create_store(config: AppConfig) -> RealtimeStore:
    """Build the configured store backend"""
    backend = config.store.backend
    if backend == "sqlite":
        return SQLiteStore.from_path(config.store.db_path)
    if backend == "memory":
        return InMemoryStore()
    raise ConfigurationError(f"Unknown store backend: {backend}")


class ServiceContainer:
    """
    All services sharing one store

    Usage:
        container = ServiceContainer(AppConfigLoader.load(), store=InMemoryStore())
        container.node_registry.register_node("node1", {...})
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        store: Optional[RealtimeStore] = None,
        sms_client: Optional[SMSClient] = None,
    ):
        self.config = config or AppConfig()
        self.store = store or create_store(self.config)

        self.activity_log = ActivityLog(self.store, batch_size=self.config.log_page_size)
        self.sms_client = sms_client or SMSClient(self.config.sms)
        self.notifications = NotificationService(self.store, self.sms_client, self.activity_log)

        self.node_registry = NodeRegistry(self.store, self.activity_log)
        self.contact_registry = ContactRegistry(self.store, self.activity_log)
        self.alert_dispatcher = AlertDispatcher(
            self.store,
            self.node_registry,
            self.contact_registry,
            self.notifications,
            self.activity_log,
        )

        self.history = HistoryService(self.store, self.activity_log)
        self.settings = SettingsService(self.store)
        self.dashboard = DashboardService(self.node_registry, self.alert_dispatcher)
        self.predictions = PredictionService(self.config.prediction)
        self.simulator = DataSimulator(self.store)
        self.admin = DataAdmin(self.store, self.activity_log)

        logger.info(f"Service container ready (store={type(self.store).__name__})")

    async def shutdown(self) -> None:
        await self.simulator.stop()
        self.sms_client.shutdown()
        self.store.close()


_container: Optional[ServiceContainer] = None


def get_container() -> ServiceContainer:
    """
    Provide a singleton ServiceContainer.

    Lazily initialized so tests can import the app without running the
    lifespan hooks (or override this dependency outright).
    """
    global _container
    if _container is None:
        _container = ServiceContainer(AppConfigLoader.load())
    return _container


def set_container(container: Optional[ServiceContainer]) -> None:
    global _container
    _container = container
