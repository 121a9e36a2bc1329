"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from fittrack.api.auth import router as auth_router
from fittrack.api.models import (
    AgeUpdate,
    CycleUpdate,
    GoalUpdate,
    HeightUpdate,
    MacroEntry,
    PeriodEntry,
    RatingEntry,
    SleepEntry,
    StepsEntry,
    WeightEntry,
)
from fittrack.app_logging import configure_logging
from fittrack.containers import AppContainer, build_container
from fittrack.domain.daily_logs import DailyLogRecord, RatingKind
from fittrack.domain.settings import (
    CycleField,
    CycleSettings,
    GoalField,
    Height,
    ProfileField,
    UserGoals,
    UserProfile,
)
from fittrack.domain.stats import SevenDayAverages, WeightPoint
from fittrack.services.aggregates import HistoryWindow
from fittrack.services.daily_log_store import InvalidEntryError, SignedOutError
from fittrack.services.gateway import PersistenceError
from fittrack.services.identity import AuthenticationError
from fittrack.services.metrics import calories, goal_progress


def create_app(container: AppContainer | None = None) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app; the container is built on startup when not given."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if app.state.container is None:
            app.state.container = await build_container()
        state_container: AppContainer = app.state.container
        await state_container.start_resources()
        yield
        await state_container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(auth_router)

    @app.exception_handler(PersistenceError)
    async def persistence_error(_: Request, exc: PersistenceError) -> JSONResponse:
        logger.warning("Remote write failed: %s", exc)
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content={"detail": "Could not save changes. Please try again."},
        )

    @app.exception_handler(SignedOutError)
    async def signed_out(_: Request, exc: SignedOutError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED, content={"detail": str(exc)}
        )

    @app.exception_handler(AuthenticationError)
    async def auth_failed(_: Request, exc: AuthenticationError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED, content={"detail": str(exc)}
        )

    @app.exception_handler(InvalidEntryError)
    async def invalid_entry(_: Request, exc: InvalidEntryError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": str(exc)})

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/today")
    async def today(request: Request) -> dict[str, object]:
        """Return today's log with goal progress."""
        store = _container(request).store
        return {
            "is_loading": store.is_loading,
            "signed_in": store.user_id is not None,
            "log": _log_payload(store.today_log),
            "progress": _progress_payload(store.today_log, store.goals),
            "cycle": {
                "phase": store.cycle_info.phase.value,
                "cycle_day": store.cycle_info.cycle_day,
                "next_period_in": store.cycle_info.next_period_in,
            },
        }

    @app.post("/today/macros")
    async def add_macro(entry: MacroEntry, request: Request) -> dict[str, object]:
        """Add grams to a macronutrient total."""
        record = _container(request).store.add_macro(entry.macro, entry.grams)
        return _log_payload(record)

    @app.put("/today/sleep")
    async def set_sleep(entry: SleepEntry, request: Request) -> dict[str, object]:
        """Set last night's sleep."""
        return _log_payload(_container(request).store.set_sleep(entry.hours))

    @app.put("/today/weight")
    async def set_weight(entry: WeightEntry, request: Request) -> dict[str, object]:
        """Set today's weight."""
        return _log_payload(_container(request).store.set_weight(entry.lbs))

    @app.put("/today/period")
    async def set_period(entry: PeriodEntry, request: Request) -> dict[str, object]:
        """Mark today as a period day or not."""
        record = _container(request).store.set_period_day(entry.is_period_day)
        return _log_payload(record)

    @app.put("/today/ratings/{kind}")
    async def set_rating(
        kind: RatingKind, entry: RatingEntry, request: Request
    ) -> dict[str, object]:
        """Set one subjective rating."""
        record = _container(request).store.set_rating(kind, entry.value)
        return _log_payload(record)

    @app.put("/today/steps")
    async def set_steps(entry: StepsEntry, request: Request) -> dict[str, object]:
        """Replace today's step count."""
        return _log_payload(_container(request).store.set_steps(entry.steps))

    @app.get("/goals")
    async def goals(request: Request) -> dict[str, object]:
        """Return the cached goals."""
        return _goals_payload(_container(request).store.goals)

    @app.put("/goals/{goal}")
    async def update_goal(
        goal: GoalField, update: GoalUpdate, request: Request
    ) -> dict[str, object]:
        """Persist a goal target."""
        updated = await _container(request).store.update_goal(goal, update.value)
        return _goals_payload(updated)

    @app.get("/profile")
    async def profile(request: Request) -> dict[str, object]:
        """Return the cached profile."""
        return _profile_payload(_container(request).store.profile)

    @app.put("/profile/age")
    async def update_age(update: AgeUpdate, request: Request) -> dict[str, object]:
        """Persist the user's age."""
        store = _container(request).store
        updated = await store.update_profile(ProfileField.AGE, update.age)
        return _profile_payload(updated)

    @app.put("/profile/height")
    async def update_height(
        update: HeightUpdate, request: Request
    ) -> dict[str, object]:
        """Persist the user's height."""
        store = _container(request).store
        height = Height(feet=update.feet, inches=update.inches)
        updated = await store.update_profile(ProfileField.HEIGHT, height)
        return _profile_payload(updated)

    @app.get("/cycle")
    async def cycle(request: Request) -> dict[str, object]:
        """Return the cached cycle settings."""
        return _cycle_payload(_container(request).store.cycle_settings)

    @app.put("/cycle/{cycle_field}")
    async def update_cycle(
        cycle_field: CycleField, update: CycleUpdate, request: Request
    ) -> dict[str, object]:
        """Persist a cycle setting."""
        store = _container(request).store
        updated = await store.update_cycle_settings(cycle_field, update.value)
        return _cycle_payload(updated)

    @app.get("/history/weight")
    async def weight_history(
        request: Request, window: HistoryWindow = HistoryWindow.WEEK
    ) -> dict[str, object]:
        """Return logged weights for the chart."""
        state_container = _container(request)
        points = await state_container.aggregates.weight_history(
            state_container.store.user_id, window
        )
        return {"window": window.value, "points": [_point(p) for p in points]}

    @app.get("/averages/seven-day")
    async def seven_day_averages(request: Request) -> dict[str, object]:
        """Return trailing seven-day averages."""
        state_container = _container(request)
        averages = await state_container.aggregates.seven_day_averages(
            state_container.store.user_id
        )
        return _averages_payload(averages)

    @app.post("/session/foreground")
    async def foreground(request: Request) -> dict[str, str]:
        """Signal that the app is visible again so the day can roll over."""
        _container(request).rollover_monitor.notify_foreground()
        return {"status": "ok"}

    return app


def _container(request: Request) -> AppContainer:
    return request.app.state.container


def _log_payload(record: DailyLogRecord) -> dict[str, object]:
    macros = record.macros
    ratings = record.ratings
    return {
        "day_key": record.day_key,
        "protein_g": macros.protein_g,
        "carbs_g": macros.carbs_g,
        "fat_g": macros.fat_g,
        "calories": calories(macros.protein_g, macros.carbs_g, macros.fat_g),
        "sleep_hours": record.sleep_hours,
        "weight_lbs": record.weight_lbs,
        "is_period_day": record.is_period_day,
        "steps": record.steps,
        "ratings": {
            kind.value: _rating(ratings.get(kind)) for kind in RatingKind
        },
        "created_at": record.created_at.isoformat(),
        "updated_at": record.updated_at.isoformat(),
    }


def _rating(value: int | None) -> int | None:
    return int(value) if value is not None else None


def _progress_payload(record: DailyLogRecord, goals: UserGoals) -> dict[str, float]:
    macros = record.macros
    total = calories(macros.protein_g, macros.carbs_g, macros.fat_g)
    return {
        "calories": goal_progress(total, goals.calories),
        "protein": goal_progress(macros.protein_g, goals.protein_g),
        "carbs": goal_progress(macros.carbs_g, goals.carbs_g),
        "fat": goal_progress(macros.fat_g, goals.fat_g),
        "steps": goal_progress(record.steps, goals.steps),
        "sleep": goal_progress(record.sleep_hours or 0, goals.sleep_hours),
    }


def _goals_payload(goals: UserGoals) -> dict[str, object]:
    return {
        "calories": goals.calories,
        **{goal.value: goals.get(goal) for goal in GoalField},
    }


def _profile_payload(profile: UserProfile) -> dict[str, object]:
    height = profile.height
    return {
        "age": profile.age,
        "height": (
            {"feet": height.feet, "inches": height.inches} if height else None
        ),
    }


def _cycle_payload(settings: CycleSettings) -> dict[str, object]:
    last_start = settings.last_period_start
    return {
        "cycle_length_days": settings.cycle_length_days,
        "period_length_days": settings.period_length_days,
        "last_period_start": last_start.isoformat() if last_start else None,
    }


def _point(point: WeightPoint) -> dict[str, object]:
    return {
        "day_key": point.day_key,
        "label": point.label,
        "weight_lbs": point.weight_lbs,
    }


def _averages_payload(averages: SevenDayAverages) -> dict[str, float | None]:
    return {
        "calories": averages.calories,
        "protein_g": averages.protein_g,
        "steps": averages.steps,
        "sleep_hours": averages.sleep_hours,
    }
