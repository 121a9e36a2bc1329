"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import acreate_client

from fittrack.adapters.supabase_gateway import SupabasePersistenceGateway
from fittrack.adapters.supabase_identity import SupabaseIdentityProvider
from fittrack.app_logging import configure_logging
from fittrack.config import Settings, resolve_timezone
from fittrack.services.aggregates import AggregateQueryService
from fittrack.services.daily_log_store import DailyLogStore
from fittrack.services.day_keys import LocalCalendar
from fittrack.services.identity import SessionProvider
from fittrack.services.rollover import RolloverMonitor


@dataclass
class AppContainer:
    """Holds session-wide dependencies."""

    settings: Settings
    identity: SessionProvider
    store: DailyLogStore
    rollover_monitor: RolloverMonitor
    aggregates: AggregateQueryService
    start_resources: Callable[[], Awaitable[None]]
    close_resources: Callable[[], Awaitable[None]]


async def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    configure_logging(resolved_settings.log_level)
    supabase_client = await acreate_client(
        resolved_settings.supabase_url, resolved_settings.supabase_anon_key
    )
    calendar = LocalCalendar(timezone=resolve_timezone(resolved_settings.timezone))
    gateway = SupabasePersistenceGateway(supabase_client)
    identity = SupabaseIdentityProvider(supabase_client)
    store = DailyLogStore(gateway=gateway, identity=identity, calendar=calendar)
    rollover_monitor = RolloverMonitor(
        store=store,
        calendar=calendar,
        interval_seconds=resolved_settings.rollover_interval_seconds,
    )
    aggregates = AggregateQueryService(gateway=gateway, calendar=calendar)

    async def start_resources() -> None:
        await identity.start()
        await store.start()
        await rollover_monitor.start()

    async def close_resources() -> None:
        await rollover_monitor.stop()
        await store.close()
        identity.close()

    return AppContainer(
        settings=resolved_settings,
        identity=identity,
        store=store,
        rollover_monitor=rollover_monitor,
        aggregates=aggregates,
        start_resources=start_resources,
        close_resources=close_resources,
    )
