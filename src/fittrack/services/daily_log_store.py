"""Session-scoped cache of today's log with optimistic persistence."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Coroutine
from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum, StrEnum
from typing import TypeVar
from uuid import UUID

from fittrack.domain.daily_logs import (
    DailyLogRecord,
    MacroType,
    Rating,
    RatingKind,
    empty_daily_log,
)
from fittrack.domain.settings import (
    DEFAULT_GOALS,
    CycleField,
    CycleInfo,
    CycleSettings,
    GoalField,
    Height,
    ProfileField,
    UserGoals,
    UserProfile,
)
from fittrack.services.cycle import CyclePredictor, FixedCyclePredictor
from fittrack.services.day_keys import LocalCalendar
from fittrack.services.gateway import PersistenceError, PersistenceGateway
from fittrack.services.identity import IdentityProvider

_logger = logging.getLogger(__name__)

T = TypeVar("T")
E = TypeVar("E", bound=Enum)

MAX_SLEEP_HOURS = 24
INCHES_PER_FOOT = 12


class StoreState(StrEnum):
    """Lifecycle of the session cache."""

    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"
    SIGNED_OUT = "signed_out"


class SignedOutError(RuntimeError):
    """Raised when a settings update is attempted with no signed-in user."""


class InvalidEntryError(ValueError):
    """Raised when a log entry or settings value is out of range."""


@dataclass
class DailyLogStore:
    """Holds today's log, goals, profile and cycle settings for one session.

    Daily-log mutators are optimistic: the cache is replaced immediately and the
    full record is written in a background task that nobody awaits. Settings
    updates are pessimistic: the remote write is awaited and the cache changes
    only when it succeeds.

    When today's log could not be fetched the cached record is unsynced: no
    full-record write is sent until a fetch confirms what is stored, so a
    failed load never overwrites a row it has not seen.

    Mutators schedule writes on the running event loop, so they must be called
    from a coroutine or callback running on that loop.
    """

    gateway: PersistenceGateway
    identity: IdentityProvider
    calendar: LocalCalendar = field(default_factory=LocalCalendar)
    cycle_predictor: CyclePredictor = field(default_factory=FixedCyclePredictor)
    _state: StoreState = field(default=StoreState.UNINITIALIZED, init=False)
    _user_id: UUID | None = field(default=None, init=False)
    _record: DailyLogRecord = field(init=False)
    _log_synced: bool = field(default=True, init=False)
    _revision: int = field(default=0, init=False)
    _goals: UserGoals = field(default=DEFAULT_GOALS, init=False)
    _profile: UserProfile = field(default_factory=UserProfile, init=False)
    _cycle_settings: CycleSettings = field(default_factory=CycleSettings, init=False)
    _pending_writes: set[asyncio.Task[None]] = field(default_factory=set, init=False)
    _pending_reloads: set[asyncio.Task[None]] = field(default_factory=set, init=False)
    _resync_task: asyncio.Task[None] | None = field(default=None, init=False)
    _unsubscribe: Callable[[], None] | None = field(default=None, init=False)

    def __post_init__(self) -> None:
        self._record = self._empty_record()

    @property
    def state(self) -> StoreState:
        """Current lifecycle state."""
        return self._state

    @property
    def is_loading(self) -> bool:
        """True until the first load finishes and while a reload runs."""
        return self._state in {StoreState.UNINITIALIZED, StoreState.LOADING}

    @property
    def user_id(self) -> UUID | None:
        """User the cache belongs to, or None when signed out."""
        return self._user_id

    @property
    def today_log(self) -> DailyLogRecord:
        """The cached record for the current day."""
        return self._record

    @property
    def log_synced(self) -> bool:
        """False while today's stored row is unknown after a failed fetch."""
        return self._log_synced

    @property
    def goals(self) -> UserGoals:
        """Cached goals."""
        return self._goals

    @property
    def profile(self) -> UserProfile:
        """Cached profile."""
        return self._profile

    @property
    def cycle_settings(self) -> CycleSettings:
        """Cached cycle settings."""
        return self._cycle_settings

    @property
    def cycle_info(self) -> CycleInfo:
        """Prediction for the cached cycle settings."""
        return self.cycle_predictor.predict(self._cycle_settings)

    async def start(self) -> None:
        """Subscribe to session changes and load the current user's data."""
        if self._unsubscribe is None:
            self._unsubscribe = self.identity.subscribe(self._on_user_changed)
        await self.reload()

    async def close(self) -> None:
        """Stop following session changes and wait for pending writes."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        for task in list(self._pending_reloads):
            task.cancel()
        await asyncio.gather(*self._pending_reloads, return_exceptions=True)
        await self.drain()

    async def drain(self) -> None:
        """Wait until every scheduled log write has finished."""
        while self._pending_writes:
            await asyncio.gather(*list(self._pending_writes))

    async def reload(self) -> None:
        """Load today's log and the user's settings from the remote store.

        Concurrent reloads are allowed; whichever finishes last wins. Results
        for a user who is no longer signed in are dropped, and a log edited
        locally while the load was in flight is kept over the fetched one.
        """
        user_id = self.identity.current_user()
        if user_id is None:
            self._sign_out()
            return

        same_user = user_id == self._user_id
        self._state = StoreState.LOADING
        day_key = self.calendar.today()
        revision = self._revision

        cached_record = (
            self._record if same_user and self._record.day_key == day_key else None
        )
        try:
            record = await self.gateway.fetch_today_log(user_id, day_key)
            log_synced = True
        except PersistenceError:
            _logger.warning(
                "Failed to load daily log %s for user %s",
                day_key,
                user_id,
                exc_info=True,
            )
            record = cached_record
            log_synced = cached_record is not None and self._log_synced
        goals = await self._fetch(
            "goals",
            self.gateway.fetch_goals(user_id),
            self._goals if same_user else None,
        )
        profile = await self._fetch(
            "profile",
            self.gateway.fetch_profile(user_id),
            self._profile if same_user else None,
        )
        cycle_settings = await self._fetch(
            "cycle settings",
            self.gateway.fetch_cycle_settings(user_id),
            self._cycle_settings if same_user else None,
        )

        if self.identity.current_user() != user_id:
            _logger.info("Discarding load for user %s after session change", user_id)
            return

        if (
            self._revision != revision
            and self._user_id == user_id
            and self._record.day_key == day_key
        ):
            _logger.info("Keeping daily log %s edited during reload", day_key)
            record = self._record
            log_synced = self._log_synced

        self._user_id = user_id
        self._record = record or empty_daily_log(day_key, self.calendar.clock())
        self._log_synced = log_synced
        self._goals = goals or DEFAULT_GOALS
        self._profile = profile or UserProfile()
        self._cycle_settings = cycle_settings or CycleSettings()
        self._state = StoreState.READY

    def add_macro(self, macro: MacroType | str, grams: float) -> DailyLogRecord:
        """Add grams (negative to correct) to a macronutrient total."""
        macro = _member(MacroType, macro, "macronutrient")
        return self._mutate(
            lambda log: replace(log, macros=log.macros.add(macro, grams))
        )

    def set_sleep(self, hours: float | None) -> DailyLogRecord:
        """Set last night's sleep, or clear it with None."""
        if hours is not None and not 0 <= hours <= MAX_SLEEP_HOURS:
            raise InvalidEntryError(
                f"sleep hours must be between 0 and {MAX_SLEEP_HOURS}"
            )
        return self._mutate(lambda log: replace(log, sleep_hours=hours))

    def set_weight(self, lbs: float | None) -> DailyLogRecord:
        """Set today's weight, or clear it with None."""
        if lbs is not None and lbs < 0:
            raise InvalidEntryError("weight must not be negative")
        return self._mutate(lambda log: replace(log, weight_lbs=lbs))

    def set_period_day(self, is_period_day: bool | None) -> DailyLogRecord:
        """Mark today as a period day, a non-period day, or unset."""
        return self._mutate(lambda log: replace(log, is_period_day=is_period_day))

    def set_rating(
        self, kind: RatingKind | str, value: Rating | int | None
    ) -> DailyLogRecord:
        """Set or clear one of the subjective ratings."""
        kind = _member(RatingKind, kind, "rating")
        rating = None if value is None else _member(Rating, value, "rating value")
        return self._mutate(
            lambda log: replace(log, ratings=log.ratings.with_rating(kind, rating))
        )

    def set_steps(self, steps: int) -> DailyLogRecord:
        """Replace today's step count."""
        if isinstance(steps, bool) or not isinstance(steps, int) or steps < 0:
            raise InvalidEntryError("steps must be a non-negative integer")
        return self._mutate(lambda log: replace(log, steps=steps))

    async def update_goal(self, goal: GoalField | str, value: float) -> UserGoals:
        """Persist a goal target, then update the cache."""
        goal = _member(GoalField, goal, "goal")
        if value < 0:
            raise InvalidEntryError(f"{goal.value} goal must not be negative")
        if goal is GoalField.STEPS:
            if value != int(value):
                raise InvalidEntryError("steps goal must be a whole number")
            value = int(value)
        user_id = self._require_user()
        await self.gateway.update_goal_field(user_id, goal, value)
        if self._user_id == user_id:
            self._goals = self._goals.with_goal(goal, value)
        return self._goals

    async def update_profile(
        self, profile_field: ProfileField | str, value: int | Height
    ) -> UserProfile:
        """Persist a profile attribute, then update the cache."""
        profile_field = _member(ProfileField, profile_field, "profile field")
        if profile_field is ProfileField.AGE:
            if isinstance(value, Height) or value <= 0:
                raise InvalidEntryError("age must be a positive number")
            updated = {"age": int(value)}
        else:
            if not isinstance(value, Height):
                raise InvalidEntryError("height must be given as feet and inches")
            if value.feet < 0 or not 0 <= value.inches < INCHES_PER_FOOT:
                raise InvalidEntryError("height must be non-negative with 0-11 inches")
            updated = {"height": value}
        user_id = self._require_user()
        await self.gateway.update_profile_field(user_id, profile_field, value)
        if self._user_id == user_id:
            self._profile = replace(self._profile, **updated)
        return self._profile

    async def update_cycle_settings(
        self, cycle_field: CycleField | str, value: int | date | str
    ) -> CycleSettings:
        """Persist a cycle setting, then update the cache."""
        cycle_field = _member(CycleField, cycle_field, "cycle setting")
        if cycle_field is CycleField.LAST_PERIOD_START:
            if isinstance(value, str):
                try:
                    value = date.fromisoformat(value)
                except ValueError as exc:
                    raise InvalidEntryError(f"invalid date: {value}") from exc
            if not isinstance(value, date):
                raise InvalidEntryError("last period start must be a date")
        elif not isinstance(value, int) or isinstance(value, bool) or value <= 0:
            raise InvalidEntryError(
                f"{cycle_field.value} must be a positive whole number"
            )
        user_id = self._require_user()
        await self.gateway.update_cycle_settings_field(user_id, cycle_field, value)
        if self._user_id == user_id:
            self._cycle_settings = replace(
                self._cycle_settings, **{cycle_field.value: value}
            )
        return self._cycle_settings

    def _mutate(
        self, change: Callable[[DailyLogRecord], DailyLogRecord]
    ) -> DailyLogRecord:
        updated = replace(change(self._record), updated_at=self.calendar.clock())
        self._record = updated
        self._revision += 1
        if self._user_id is None:
            return updated
        if self._log_synced:
            self._schedule_write(self._user_id, updated)
        else:
            self._schedule_resync(self._user_id, updated.day_key)
        return updated

    def _schedule_write(self, user_id: UUID, record: DailyLogRecord) -> None:
        self._track(self._write(user_id, record))

    def _schedule_resync(self, user_id: UUID, day_key: str) -> None:
        if self._resync_task is not None and not self._resync_task.done():
            return
        self._resync_task = self._track(self._resync(user_id, day_key))

    def _track(self, write: Coroutine[object, object, None]) -> asyncio.Task[None]:
        task = asyncio.get_running_loop().create_task(write)
        self._pending_writes.add(task)
        task.add_done_callback(self._pending_writes.discard)
        return task

    async def _write(self, user_id: UUID, record: DailyLogRecord) -> None:
        try:
            await self.gateway.upsert_log(user_id, record)
        except PersistenceError:
            _logger.warning(
                "Failed to save daily log %s for user %s",
                record.day_key,
                user_id,
                exc_info=True,
            )

    async def _resync(self, user_id: UUID, day_key: str) -> None:
        try:
            stored = await self.gateway.fetch_today_log(user_id, day_key)
        except PersistenceError:
            _logger.warning(
                "Daily log %s for user %s is still unsynced; local edits not saved",
                day_key,
                user_id,
                exc_info=True,
            )
            return
        if (
            self._log_synced
            or self._user_id != user_id
            or self._record.day_key != day_key
        ):
            return
        self._log_synced = True
        if stored is None:
            self._schedule_write(user_id, self._record)
            return
        _logger.warning(
            "Stored daily log %s for user %s replaces unsaved local edits",
            day_key,
            user_id,
        )
        self._record = stored

    async def _fetch(
        self, what: str, request: Awaitable[T | None], fallback: T | None
    ) -> T | None:
        try:
            return await request
        except PersistenceError:
            _logger.warning("Failed to load %s; using fallback", what, exc_info=True)
            return fallback

    def _on_user_changed(self, user_id: UUID | None) -> None:
        _logger.info("Session user changed to %s; reloading", user_id)
        task = asyncio.get_running_loop().create_task(self.reload())
        self._pending_reloads.add(task)
        task.add_done_callback(self._pending_reloads.discard)

    def _sign_out(self) -> None:
        self._user_id = None
        self._record = self._empty_record()
        self._log_synced = True
        self._goals = DEFAULT_GOALS
        self._profile = UserProfile()
        self._cycle_settings = CycleSettings()
        self._state = StoreState.SIGNED_OUT

    def _require_user(self) -> UUID:
        if self._user_id is None:
            raise SignedOutError("Sign in to change settings")
        return self._user_id

    def _empty_record(self) -> DailyLogRecord:
        return empty_daily_log(self.calendar.today(), self.calendar.clock())


def _member(enum_type: type[E], value: object, what: str) -> E:
    try:
        return enum_type(value)
    except ValueError as exc:
        raise InvalidEntryError(f"unknown {what}: {value}") from exc
