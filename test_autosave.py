"""
Unit tests for the scheduler and the debounced autosave coordinator.
"""

import asyncio

import pytest

from cms_forms.autosave import AutoSaveCoordinator, AutoSaveStatus
from cms_forms.scheduler import Scheduler
from test_fixtures import FakeClock


class TestScheduler:
    """Test cases for the deadline scheduler."""

    def test_runs_only_due_timers(self):
        clock = FakeClock()
        scheduler = Scheduler(clock)
        fired = []
        scheduler.schedule(100, lambda: fired.append('a'))
        scheduler.schedule(300, lambda: fired.append('b'))

        clock.advance_ms(150)
        assert scheduler.run_due() == 1
        assert fired == ['a']
        assert scheduler.pending() == 1

        clock.advance_ms(200)
        scheduler.run_due()
        assert fired == ['a', 'b']
        assert scheduler.next_deadline_ms() is None

    def test_earliest_first(self):
        clock = FakeClock()
        scheduler = Scheduler(clock)
        fired = []
        scheduler.schedule(50, lambda: fired.append('late'))
        scheduler.schedule(10, lambda: fired.append('early'))
        clock.advance_ms(100)
        scheduler.run_due()
        assert fired == ['early', 'late']

    def test_cancel(self):
        clock = FakeClock()
        scheduler = Scheduler(clock)
        fired = []
        handle = scheduler.schedule(10, lambda: fired.append('x'))

        assert scheduler.cancel(handle) is True
        assert scheduler.cancel(handle) is False
        assert scheduler.cancel(None) is False

        clock.advance_ms(20)
        scheduler.run_due()
        assert fired == []

    def test_callback_can_cancel_later_timer(self):
        clock = FakeClock()
        scheduler = Scheduler(clock)
        fired = []
        handles = {}
        handles['second'] = scheduler.schedule(20, lambda: fired.append('second'))
        scheduler.schedule(10, lambda: scheduler.cancel(handles['second']))

        clock.advance_ms(30)
        scheduler.run_due()
        assert fired == []

    def test_next_deadline(self):
        clock = FakeClock(start=1.0)
        scheduler = Scheduler(clock)
        scheduler.schedule(500, lambda: None)
        assert scheduler.next_deadline_ms() == pytest.approx(1500.0)


class TestAutoSaveCoordinator:
    """Test cases for debounce, manual save and error handling."""

    def _coordinator(self, on_save=None, interval=2000):
        clock = FakeClock()
        scheduler = Scheduler(clock)
        document = {'title': 'A'}
        saved = []

        def default_save(snapshot):
            saved.append(snapshot)
            return True

        coordinator = AutoSaveCoordinator(on_save or default_save, lambda: document, scheduler, interval)
        return coordinator, clock, scheduler, document, saved

    def test_debounce_saves_once_after_quiet_period(self):
        coordinator, clock, scheduler, document, saved = self._coordinator()

        for _ in range(3):
            coordinator.notify_change()
            clock.advance_ms(500)
            scheduler.run_due()

        assert saved == []
        assert coordinator.status == AutoSaveStatus.PENDING
        assert coordinator.is_pending

        clock.advance_ms(2000)
        scheduler.run_due()

        assert saved == [{'title': 'A'}]
        assert coordinator.status == AutoSaveStatus.IDLE
        assert not coordinator.state.has_unsaved_changes
        assert coordinator.state.last_saved_at is not None
        assert not coordinator.is_pending

    def test_snapshot_is_a_copy(self):
        coordinator, clock, scheduler, document, saved = self._coordinator()
        coordinator.notify_change()
        clock.advance_ms(2000)
        scheduler.run_due()
        document['title'] = 'B'
        assert saved[0]['title'] == 'A'

    def test_save_now_skips_debounce(self):
        coordinator, clock, scheduler, document, saved = self._coordinator()
        coordinator.notify_change()

        assert coordinator.save_now() is True
        assert len(saved) == 1
        assert scheduler.pending() == 0

        clock.advance_ms(5000)
        scheduler.run_due()
        assert len(saved) == 1

    def test_save_now_without_changes(self):
        coordinator, *_, saved = self._coordinator()
        assert coordinator.save_now() is False
        assert saved == []

    def test_rejected_save_keeps_unsaved(self):
        coordinator, clock, scheduler, *_ = self._coordinator(on_save=lambda doc: False)
        coordinator.notify_change()
        clock.advance_ms(2000)
        scheduler.run_due()

        assert coordinator.status == AutoSaveStatus.ERROR
        assert coordinator.state.has_unsaved_changes
        assert coordinator.state.last_error == "El guardado fue rechazado"
        assert not coordinator.state.is_saving

    def test_raising_save_does_not_retry(self):
        calls = []

        def failing(doc):
            calls.append(doc)
            raise ConnectionError("sin conexión")

        coordinator, clock, scheduler, *_ = self._coordinator(on_save=failing)
        coordinator.notify_change()
        clock.advance_ms(2000)
        scheduler.run_due()
        clock.advance_ms(10000)
        scheduler.run_due()

        assert len(calls) == 1
        assert coordinator.state.last_error == "sin conexión"
        assert coordinator.status == AutoSaveStatus.ERROR

    def test_next_change_after_error_rearms(self):
        results = [False, True]
        coordinator, clock, scheduler, *_ = self._coordinator(on_save=lambda doc: results.pop(0))
        coordinator.notify_change()
        clock.advance_ms(2000)
        scheduler.run_due()

        coordinator.notify_change()
        assert coordinator.status == AutoSaveStatus.PENDING
        clock.advance_ms(2000)
        scheduler.run_due()

        assert coordinator.status == AutoSaveStatus.IDLE
        assert coordinator.state.last_error is None

    def test_async_save_callback(self):
        saved = []

        async def save(doc):
            await asyncio.sleep(0)
            saved.append(doc)
            return True

        coordinator, clock, scheduler, *_ = self._coordinator(on_save=save)
        coordinator.notify_change()
        clock.advance_ms(2000)
        scheduler.run_due()

        assert saved == [{'title': 'A'}]
        assert coordinator.status == AutoSaveStatus.IDLE

    def test_change_during_save_stays_unsaved(self):
        holder = {}

        def save(doc):
            holder['coordinator'].notify_change()
            return True

        coordinator, clock, scheduler, *_ = self._coordinator(on_save=save)
        holder['coordinator'] = coordinator
        coordinator.notify_change()
        clock.advance_ms(2000)
        scheduler.run_due()

        assert coordinator.state.has_unsaved_changes
        assert coordinator.status == AutoSaveStatus.PENDING
        assert coordinator.is_pending

    def test_reset_discards_in_flight_result(self):
        holder = {}

        def save(doc):
            holder['coordinator'].reset()
            raise RuntimeError("late failure")

        coordinator, clock, scheduler, *_ = self._coordinator(on_save=save)
        holder['coordinator'] = coordinator
        coordinator.notify_change()
        clock.advance_ms(2000)
        scheduler.run_due()

        assert coordinator.status == AutoSaveStatus.IDLE
        assert coordinator.state.last_error is None
        assert not coordinator.state.has_unsaved_changes

    def test_dispose_cancels_pending(self):
        coordinator, clock, scheduler, document, saved = self._coordinator()
        coordinator.notify_change()
        coordinator.dispose()
        clock.advance_ms(5000)
        scheduler.run_due()
        assert saved == []
        assert not coordinator.is_pending
