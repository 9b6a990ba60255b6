from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from facility_history.core.exceptions import ValidationError
from facility_history.core.types import ExportRequest, ExportWindow, WindowPolicy

DATE_FORMAT = "%d/%m/%Y"
MAX_WINDOW_DAYS = 90
BULK_DEFAULT_DAYS = 7
INSPECTION_LOOKBACK = timedelta(hours=12)


def _utc_now() -> datetime:
    return datetime.now(UTC)


class TimeWindowPlanner:
    """Turns user-supplied dates or a day count into a validated window.

    Dates are calendar days in ``DD/MM/YYYY`` and are interpreted in the
    planner's time zone.  The resulting window always satisfies
    ``start <= end`` and ``end - start <= max_days``, so explicit dates
    may be at most ``max_days - 1`` calendar days apart.
    """

    def __init__(
        self,
        timezone: str | ZoneInfo = "America/Sao_Paulo",
        *,
        max_days: int = MAX_WINDOW_DAYS,
        bulk_default_days: int = BULK_DEFAULT_DAYS,
        inspection_lookback: timedelta = INSPECTION_LOOKBACK,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.tz = ZoneInfo(timezone) if isinstance(timezone, str) else timezone
        self.max_days = max_days
        self.bulk_default_days = bulk_default_days
        self.inspection_lookback = inspection_lookback
        self._clock = clock

    def now(self) -> datetime:
        return self._clock().astimezone(self.tz)

    def today(self) -> date:
        return self.now().date()

    def start_of_day(self, day: date) -> datetime:
        return datetime.combine(day, time.min, tzinfo=self.tz)

    def end_of_day(self, day: date) -> datetime:
        return datetime.combine(day, time.max, tzinfo=self.tz)

    def day_window(self, day: date | None = None) -> ExportWindow:
        day = day or self.today()
        return ExportWindow(start=self.start_of_day(day), end=self.end_of_day(day))

    def parse_date(self, text: str, field: str) -> date:
        try:
            return datetime.strptime(text.strip(), DATE_FORMAT).date()
        except (ValueError, AttributeError):
            raise ValidationError(
                field, f'data inválida "{text}"; use o formato DD/MM/AAAA'
            ) from None

    def plan_request(
        self,
        request: ExportRequest,
        policy: WindowPolicy = WindowPolicy.BULK_EXPORT,
    ) -> ExportWindow:
        return self.plan(
            start_date=request.start_date,
            end_date=request.end_date,
            days=request.days,
            policy=policy,
        )

    def plan(
        self,
        *,
        start_date: str | None = None,
        end_date: str | None = None,
        days: int | None = None,
        policy: WindowPolicy = WindowPolicy.BULK_EXPORT,
    ) -> ExportWindow:
        """Resolve the window.

        Precedence: ``days`` beats ``start_date``, which beats the
        policy default.  ``end_date`` is honoured unless ``days`` is given.
        """
        today = self.today()

        if days is not None:
            if days < 1:
                raise ValidationError("days", "o número de dias deve ser >= 1")
            if days > self.max_days:
                raise ValidationError(
                    "days", f"o período máximo é de {self.max_days} dias"
                )
            return self._bounded(
                ExportWindow(
                    start=self.start_of_day(today - timedelta(days=days - 1)),
                    end=self.end_of_day(today),
                ),
                "days",
            )

        end_day = self.parse_date(end_date, "end_date") if end_date else None
        start_day = self.parse_date(start_date, "start_date") if start_date else None

        if start_day is None and end_day is None:
            if policy is WindowPolicy.INSPECTION:
                now = self.now()
                return ExportWindow(start=now - self.inspection_lookback, end=now)
            start_day = today - timedelta(days=self.bulk_default_days)
            end_day = today
        elif start_day is None:
            assert end_day is not None
            if policy is WindowPolicy.INSPECTION:
                start_day = end_day
            else:
                start_day = end_day - timedelta(days=self.bulk_default_days)
        elif end_day is None:
            end_day = today

        if start_day > end_day:
            raise ValidationError(
                "end_date",
                f"a data final {end_day:%d/%m/%Y} é anterior à data inicial "
                f"{start_day:%d/%m/%Y}",
            )
        return self._bounded(
            ExportWindow(
                start=self.start_of_day(start_day), end=self.end_of_day(end_day)
            ),
            "end_date",
        )

    def _bounded(self, window: ExportWindow, field: str) -> ExportWindow:
        if window.span > timedelta(days=self.max_days):
            raise ValidationError(field, f"o período máximo é de {self.max_days} dias")
        return window
