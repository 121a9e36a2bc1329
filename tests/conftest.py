"""Shared test fixtures."""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import UTC, date, datetime, timedelta
from uuid import UUID, uuid4

import pytest

from fittrack.config import Settings
from fittrack.containers import AppContainer
from fittrack.domain.daily_logs import DailyLogRecord
from fittrack.domain.settings import (
    DEFAULT_GOALS,
    CycleField,
    CycleSettings,
    GoalField,
    Height,
    ProfileField,
    UserGoals,
    UserProfile,
)
from fittrack.domain.stats import LogSummary
from fittrack.services.aggregates import AggregateQueryService
from fittrack.services.daily_log_store import DailyLogStore
from fittrack.services.day_keys import LocalCalendar
from fittrack.services.gateway import PersistenceError, PersistenceGateway
from fittrack.services.identity import (
    AuthenticationError,
    SessionProvider,
    UserListener,
)
from fittrack.services.rollover import RolloverMonitor


@dataclass
class MutableClock:
    """Clock whose current instant can be moved by tests."""

    current: datetime = field(
        default_factory=lambda: datetime(2024, 3, 10, 12, 0, tzinfo=UTC)
    )

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> None:
        self.current += timedelta(**kwargs)


@dataclass
class InMemoryPersistenceGateway(PersistenceGateway):
    """In-memory gateway with switchable failures and write delays."""

    logs: dict[tuple[UUID, str], DailyLogRecord] = field(default_factory=dict)
    goals: dict[UUID, UserGoals] = field(default_factory=dict)
    profiles: dict[UUID, UserProfile] = field(default_factory=dict)
    cycle_settings: dict[UUID, CycleSettings] = field(default_factory=dict)
    failing: set[str] = field(default_factory=set)
    write_delays: list[float] = field(default_factory=list)
    upserts: list[DailyLogRecord] = field(default_factory=list)
    calls: list[str] = field(default_factory=list)
    fetch_gates: list[asyncio.Event] = field(default_factory=list)

    async def fetch_today_log(
        self, user_id: UUID, day_key: str
    ) -> DailyLogRecord | None:
        await self._enter("fetch_today_log")
        record = self.logs.get((user_id, day_key))
        if self.fetch_gates:
            await self.fetch_gates.pop(0).wait()
        return record

    async def upsert_log(self, user_id: UUID, record: DailyLogRecord) -> None:
        delay = self.write_delays.pop(0) if self.write_delays else 0
        await asyncio.sleep(delay)
        await self._enter("upsert_log")
        self.upserts.append(record)
        self.logs[(user_id, record.day_key)] = record

    async def fetch_goals(self, user_id: UUID) -> UserGoals | None:
        await self._enter("fetch_goals")
        return self.goals.get(user_id)

    async def update_goal_field(
        self, user_id: UUID, goal: GoalField, value: float
    ) -> None:
        await self._enter("update_goal_field")
        current = self.goals.get(user_id, DEFAULT_GOALS)
        self.goals[user_id] = current.with_goal(goal, value)

    async def fetch_profile(self, user_id: UUID) -> UserProfile | None:
        await self._enter("fetch_profile")
        return self.profiles.get(user_id)

    async def update_profile_field(
        self, user_id: UUID, profile_field: ProfileField, value: int | Height
    ) -> None:
        await self._enter("update_profile_field")
        current = self.profiles.get(user_id, UserProfile())
        self.profiles[user_id] = replace(current, **{profile_field.value: value})

    async def fetch_cycle_settings(self, user_id: UUID) -> CycleSettings | None:
        await self._enter("fetch_cycle_settings")
        return self.cycle_settings.get(user_id)

    async def update_cycle_settings_field(
        self, user_id: UUID, cycle_field: CycleField, value: int | date
    ) -> None:
        await self._enter("update_cycle_settings_field")
        current = self.cycle_settings.get(user_id, CycleSettings())
        self.cycle_settings[user_id] = replace(current, **{cycle_field.value: value})

    async def query_logs_in_range(
        self, user_id: UUID, start_day_key: str, end_day_key: str
    ) -> list[LogSummary]:
        await self._enter("query_logs_in_range")
        rows = [
            _summary(record)
            for (owner, day_key), record in self.logs.items()
            if owner == user_id and start_day_key <= day_key <= end_day_key
        ]
        return sorted(rows, key=lambda row: row.day_key)

    async def _enter(self, name: str) -> None:
        self.calls.append(name)
        if name in self.failing:
            raise PersistenceError(f"{name} failed")


def _summary(record: DailyLogRecord) -> LogSummary:
    return LogSummary(
        day_key=record.day_key,
        protein_g=record.macros.protein_g,
        carbs_g=record.macros.carbs_g,
        fat_g=record.macros.fat_g,
        steps=record.steps,
        sleep_hours=record.sleep_hours,
        weight_lbs=record.weight_lbs,
    )


@dataclass
class FakeIdentityProvider(SessionProvider):
    """Identity provider driven directly by tests."""

    user_id: UUID | None = None
    passwords: dict[str, tuple[str, UUID]] = field(default_factory=dict)
    listeners: list[UserListener] = field(default_factory=list)

    def current_user(self) -> UUID | None:
        return self.user_id

    def subscribe(self, listener: UserListener) -> Callable[[], None]:
        self.listeners.append(listener)
        return lambda: self.listeners.remove(listener)

    def switch_user(self, user_id: UUID | None) -> None:
        self.user_id = user_id
        for listener in list(self.listeners):
            listener(user_id)

    async def sign_up(self, email: str, password: str) -> None:
        if email in self.passwords:
            raise AuthenticationError("User already registered")
        self.passwords[email] = (password, uuid4())

    async def sign_in(self, email: str, password: str) -> None:
        stored = self.passwords.get(email)
        if stored is None or stored[0] != password:
            raise AuthenticationError("Invalid login credentials")
        self.switch_user(stored[1])

    async def sign_out(self) -> None:
        self.switch_user(None)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_anon_key="header.payload.signature",
        timezone="UTC",
    )


@pytest.fixture
def clock() -> MutableClock:
    return MutableClock()


@pytest.fixture
def calendar(clock: MutableClock) -> LocalCalendar:
    return LocalCalendar(timezone=UTC, clock=clock)


@pytest.fixture
def gateway() -> InMemoryPersistenceGateway:
    return InMemoryPersistenceGateway()


@pytest.fixture
def user_id() -> UUID:
    return uuid4()


@pytest.fixture
def identity(user_id: UUID) -> FakeIdentityProvider:
    return FakeIdentityProvider(user_id=user_id)


@pytest.fixture
def store(
    gateway: InMemoryPersistenceGateway,
    identity: FakeIdentityProvider,
    calendar: LocalCalendar,
) -> DailyLogStore:
    return DailyLogStore(gateway=gateway, identity=identity, calendar=calendar)


@pytest.fixture
def container(
    settings: Settings,
    gateway: InMemoryPersistenceGateway,
    identity: FakeIdentityProvider,
    calendar: LocalCalendar,
    store: DailyLogStore,
) -> AppContainer:
    rollover_monitor = RolloverMonitor(
        store=store, calendar=calendar, interval_seconds=3600
    )
    aggregates = AggregateQueryService(gateway=gateway, calendar=calendar)

    async def start_resources() -> None:
        await store.start()
        await rollover_monitor.start()

    async def close_resources() -> None:
        await rollover_monitor.stop()
        await store.close()

    return AppContainer(
        settings=settings,
        identity=identity,
        store=store,
        rollover_monitor=rollover_monitor,
        aggregates=aggregates,
        start_resources=start_resources,
        close_resources=close_resources,
    )
