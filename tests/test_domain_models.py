"""
Tests for domain models.
"""

import pendulum
import pytest
from datetime import date, time

from salonslots.domain.exceptions import InvalidInput
from salonslots.domain.models import (
    Booking,
    BookingInterval,
    BookingStatus,
    PaymentStatus,
    Provider,
    Service,
    TimeRange,
    TimeSlot,
    WeeklySchedule,
    WorkingInterval,
    parse_time_of_day,
)


class TestTimeRange:
    """Tests for TimeRange model."""

    def test_create_valid_time_range(self):
        """Test creating a valid time range."""
        start = pendulum.parse("2024-11-25 09:00", tz="Europe/Berlin")
        end = pendulum.parse("2024-11-25 17:00", tz="Europe/Berlin")

        tr = TimeRange(start=start, end=end)

        assert tr.start == start
        assert tr.end == end
        assert tr.duration_minutes() == 480  # 8 hours

    def test_invalid_time_range_raises_error(self):
        """Test that creating an invalid time range raises InvalidInput."""
        start = pendulum.parse("2024-11-25 17:00", tz="Europe/Berlin")
        end = pendulum.parse("2024-11-25 09:00", tz="Europe/Berlin")

        with pytest.raises(InvalidInput, match="Start time .* must be before end time"):
            TimeRange(start=start, end=end)

    def test_empty_time_range_raises_error(self):
        """Zero-length ranges violate start < end."""
        instant = pendulum.parse("2024-11-25 09:00", tz="UTC")

        with pytest.raises(ValueError):
            TimeRange(start=instant, end=instant)

    def test_overlaps_is_half_open(self):
        """Ranges that only touch do not overlap."""
        tr1 = TimeRange(
            start=pendulum.parse("2024-11-25 09:00", tz="UTC"),
            end=pendulum.parse("2024-11-25 10:00", tz="UTC")
        )
        tr2 = TimeRange(
            start=pendulum.parse("2024-11-25 09:30", tz="UTC"),
            end=pendulum.parse("2024-11-25 11:00", tz="UTC")
        )
        tr3 = TimeRange(
            start=pendulum.parse("2024-11-25 10:00", tz="UTC"),
            end=pendulum.parse("2024-11-25 11:00", tz="UTC")
        )

        assert tr1.overlaps(tr2)
        assert tr2.overlaps(tr1)
        assert not tr1.overlaps(tr3)
        assert not tr3.overlaps(tr1)

    def test_booking_interval_keeps_provider(self):
        interval = BookingInterval(
            start=pendulum.parse("2024-11-25 09:00", tz="UTC"),
            end=pendulum.parse("2024-11-25 09:30", tz="UTC"),
            provider_id="prov-1",
            booking_id="bk-1",
        )

        assert interval.provider_id == "prov-1"
        assert interval.duration_minutes() == 30


class TestWorkingInterval:
    """Tests for WorkingInterval and time parsing."""

    def test_parse_entry(self):
        interval = WorkingInterval.parse({"start": "09:30", "end": "17:00"})

        assert interval.start == time(9, 30)
        assert interval.end == time(17, 0)

    def test_start_must_precede_end(self):
        with pytest.raises(InvalidInput, match="must be before end"):
            WorkingInterval.parse({"start": "18:00", "end": "09:00"})

        with pytest.raises(InvalidInput):
            WorkingInterval.parse({"start": "09:00", "end": "09:00"})

    def test_missing_key(self):
        with pytest.raises(InvalidInput, match="'start' and 'end'"):
            WorkingInterval.parse({"start": "09:00"})

    @pytest.mark.parametrize("raw", ["9", "25:00", "09:75", "nine", "", None, 900])
    def test_invalid_time_of_day(self, raw):
        with pytest.raises(InvalidInput):
            parse_time_of_day(raw)

    def test_on_builds_range_in_timezone(self):
        interval = WorkingInterval(start=time(9, 0), end=time(17, 0))

        work_range = interval.on(date(2024, 11, 25), tz="Europe/Berlin")

        assert work_range.start == pendulum.datetime(2024, 11, 25, 8, 0, tz="UTC")
        assert work_range.end.hour == 17


class TestWeeklySchedule:
    """Tests for WeeklySchedule model."""

    def test_interval_for_weekday(self):
        """Test working day detection."""
        schedule = WeeklySchedule.from_mapping({
            "mon": {"start": "09:00", "end": "12:00"},
            "sat": {"start": "10:00", "end": "14:00"},
        })

        monday = date(2024, 11, 25)
        saturday = date(2024, 11, 23)
        sunday = date(2024, 11, 24)

        assert schedule.interval_for(monday) == WorkingInterval(time(9, 0), time(12, 0))
        assert schedule.is_working_day(saturday)
        assert not schedule.is_working_day(sunday)
        assert schedule.interval_for(sunday) is None

    def test_full_day_names_and_null_entries(self):
        schedule = WeeklySchedule.from_mapping({
            "Monday": {"start": "09:00", "end": "12:00"},
            "tuesday": None,
        })

        assert set(schedule.days) == {"mon"}

    def test_unknown_day_key(self):
        with pytest.raises(InvalidInput, match="Unknown day of week"):
            WeeklySchedule.from_mapping({"funday": {"start": "09:00", "end": "12:00"}})

    def test_duplicate_day(self):
        with pytest.raises(InvalidInput, match="Duplicate"):
            WeeklySchedule.from_mapping({
                "mon": {"start": "09:00", "end": "12:00"},
                "monday": {"start": "13:00", "end": "15:00"},
            })

    def test_missing_schedule_is_empty(self):
        assert WeeklySchedule.from_mapping(None).days == {}

    def test_record_round_trip_keeps_format(self):
        raw = {"wed": {"start": "08:30", "end": "16:00"}}

        assert WeeklySchedule.from_mapping(raw).to_record() == raw


class TestRecords:
    """Tests for persisted record parsing."""

    def test_service_from_record_uses_duration_min(self):
        service = Service.from_record({
            "id": "svc-1",
            "salon_id": "salon-1",
            "name": "Haircut",
            "duration_min": 45,
            "price": 30,
        })

        assert service.duration_minutes == 45
        assert service.active

    @pytest.mark.parametrize("duration", [0, -15, 1.5, None, True])
    def test_service_rejects_bad_duration(self, duration):
        with pytest.raises(InvalidInput):
            Service(id="svc-1", salon_id="salon-1", name="Cut", duration_minutes=duration)

    def test_provider_from_record(self):
        provider = Provider.from_record({
            "id": "prov-1",
            "salon_id": "salon-1",
            "name": "Ana",
            "schedule": {"mon": {"start": "09:00", "end": "18:00"}},
        })

        assert provider.schedule.is_working_day(date(2024, 11, 25))

    def test_booking_from_record(self):
        booking = Booking.from_record({
            "id": "bk-1",
            "salon_id": "salon-1",
            "service_id": "svc-1",
            "provider_id": "prov-1",
            "client_id": "client-1",
            "start_time": "2024-11-25T10:00:00+00:00",
            "end_time": "2024-11-25T10:30:00+00:00",
            "status": "confirmed",
        })

        assert booking.status is BookingStatus.CONFIRMED
        assert booking.payment_status is PaymentStatus.UNPAID
        assert booking.interval.provider_id == "prov-1"
        assert booking.interval.booking_id == "bk-1"
        assert not booking.is_cancelled

    def test_booking_naive_timestamps_use_timezone(self):
        booking = Booking.from_record(
            {
                "id": "bk-1",
                "salon_id": "salon-1",
                "service_id": "svc-1",
                "provider_id": "prov-1",
                "client_id": "client-1",
                "start_time": "2024-11-25T10:00:00",
                "end_time": "2024-11-25T10:30:00",
            },
            tz="Europe/Berlin",
        )

        assert booking.start == pendulum.datetime(2024, 11, 25, 9, 0, tz="UTC")

    def test_booking_record_missing_field(self):
        with pytest.raises(InvalidInput, match="missing field"):
            Booking.from_record({"id": "bk-1"})

    def test_booking_record_bad_status(self):
        with pytest.raises(InvalidInput):
            Booking.from_record({
                "id": "bk-1",
                "salon_id": "salon-1",
                "service_id": "svc-1",
                "provider_id": "prov-1",
                "client_id": "client-1",
                "start_time": "2024-11-25T10:00:00+00:00",
                "end_time": "2024-11-25T10:30:00+00:00",
                "status": "maybe",
            })


class TestTimeSlot:
    def test_display_helpers(self):
        slot = TimeSlot(
            start=pendulum.datetime(2024, 11, 25, 9, 30, tz="UTC"),
            end=pendulum.datetime(2024, 11, 25, 10, 0, tz="UTC"),
            available=True,
        )

        assert slot.start_time == time(9, 30)
        assert slot.label == "09:30"
        assert slot.time_range.duration_minutes() == 30
        assert "09:30 - 10:00 (available)" in slot.format_display()
