"""Tests for the selection presenter and panel placement."""

import datetime
import pytest

from daylight_timeline.config import InteractionConfig
from daylight_timeline.data.series import build_year_series
from daylight_timeline.engine import Dataset
from daylight_timeline.presenter import (
    DeviceMode,
    PresenterState,
    SelectionMode,
    SelectionPresenter,
    place_panel,
)
from daylight_timeline.timers import ManualScheduler
from daylight_timeline.views.base import MarkerKind, PanelMode, Point, Size

from conftest import REFERENCE_DATE, FakeSampler, linear_daylight

DESKTOP = Size(1024, 768)
MOBILE = Size(400, 800)
TODAY_X = 182


class TestDeviceMode:
    def test_from_width(self):
        assert DeviceMode.from_width(1024) == DeviceMode.DESKTOP
        assert DeviceMode.from_width(768) == DeviceMode.DESKTOP
        assert DeviceMode.from_width(767) == DeviceMode.MOBILE
        assert DeviceMode.from_width(900, breakpoint=1000) == DeviceMode.MOBILE


class TestPlacePanel:
    """Tests for place_panel()."""

    content = Size(200, 100)

    def test_desktop_right_of_anchor(self):
        position = place_panel(DESKTOP, self.content, Point(100, 300), DeviceMode.DESKTOP)
        assert position == Point(140, 250)

    def test_desktop_flips_left(self):
        position = place_panel(DESKTOP, self.content, Point(900, 300), DeviceMode.DESKTOP)
        assert position == Point(660, 250)

    def test_desktop_clamped_vertically(self):
        position = place_panel(DESKTOP, self.content, Point(100, 10), DeviceMode.DESKTOP)
        assert position.y == 20

    def test_mobile_above_anchor(self):
        position = place_panel(MOBILE, self.content, Point(200, 400), DeviceMode.MOBILE)
        assert position == Point(100, 260)

    def test_mobile_below_when_no_room(self):
        position = place_panel(MOBILE, self.content, Point(200, 50), DeviceMode.MOBILE)
        assert position == Point(100, 90)

    def test_mobile_clamped_horizontally(self):
        position = place_panel(MOBILE, self.content, Point(10, 400), DeviceMode.MOBILE)
        assert position.x == 20

    @pytest.mark.parametrize("anchor", [Point(0, 0), Point(1024, 768), Point(512, 384)])
    def test_stays_inside_viewport(self, anchor):
        for mode in DeviceMode:
            position = place_panel(DESKTOP, self.content, anchor, mode)
            assert 20 <= position.x <= DESKTOP.width - self.content.width - 20
            assert 20 <= position.y <= DESKTOP.height - self.content.height - 20

    def test_oversized_content_pinned_to_margin(self):
        position = place_panel(DESKTOP, Size(2000, 2000), Point(500, 500), DeviceMode.DESKTOP)
        assert position == Point(20, 20)


class TestSelectionPresenter:
    """Tests for SelectionPresenter."""

    @pytest.fixture
    def scheduler(self):
        return ManualScheduler()

    @pytest.fixture
    def datasets(self, linear_series, make_location):
        primary = make_location("New York, NY", primary=True, offset=-5)
        other = make_location("Oslo, Norway", lat=59.91, lng=10.75, offset=1)
        other.color_index = 1
        short = build_year_series(
            59.91, 10.75, REFERENCE_DATE, FakeSampler(linear_daylight), window_days=100
        )
        return [Dataset(primary, linear_series), Dataset(other, short)]

    @pytest.fixture
    def presenter(self, renderer, scheduler, datasets):
        renderer.render(datasets)
        presenter = SelectionPresenter(renderer, scheduler, InteractionConfig(), DESKTOP)
        presenter.set_datasets(datasets)
        return presenter

    @pytest.fixture
    def events(self, presenter):
        received = []
        presenter.subscribe(received.append)
        return received

    def test_initial_state(self, presenter):
        assert presenter.state == PresenterState.IDLE
        assert presenter.device_mode == DeviceMode.DESKTOP
        assert presenter.selection.mode == SelectionMode.NONE

    def test_hover_shows_tooltip(self, presenter, renderer, events):
        presenter.pointer_move(TODAY_X, 300)

        assert presenter.state == PresenterState.TOOLTIP
        assert presenter.selection.active_sample.date == REFERENCE_DATE
        assert presenter.selection.mode == SelectionMode.TOOLTIP
        assert renderer.panel.mode == PanelMode.TOOLTIP
        assert renderer.panel.content.title == "Jun 21"
        assert len(events) == 1

    def test_tooltip_only_lists_aligned_locations(self, presenter, renderer):
        presenter.pointer_move(TODAY_X, 300)
        assert [line.name for line in renderer.panel.content.lines] == ["New York"]

        presenter.pointer_move(10, 300)
        assert [line.name for line in renderer.panel.content.lines] == ["New York", "Oslo"]

    def test_markers(self, presenter, renderer):
        presenter.pointer_move(10, 300)

        kinds = [m.kind for m in renderer.markers]
        assert kinds == [MarkerKind.SELECTION_LINE, MarkerKind.HOVER_DOT, MarkerKind.HOVER_DOT]
        assert renderer.markers[1].color == "#2196F3"
        assert renderer.markers[2].color == "#4CAF50"

    def test_markers_replaced_not_stacked(self, presenter, renderer):
        presenter.pointer_move(10, 300)
        presenter.pointer_move(20, 300)
        assert len(renderer.markers) == 3
        assert renderer.markers[0].date == renderer.start + datetime.timedelta(days=20)

    def test_same_sample_not_renotified(self, presenter, events):
        presenter.pointer_enter(TODAY_X, 300)
        presenter.pointer_move(TODAY_X + 0.3, 310)
        assert len(events) == 1

    def test_new_sample_notifies(self, presenter, events):
        presenter.pointer_move(TODAY_X, 300)
        presenter.pointer_move(TODAY_X + 1, 300)
        assert len(events) == 2

    def test_leave_hides_after_delay(self, presenter, renderer, scheduler, events):
        presenter.pointer_move(TODAY_X, 300)
        presenter.pointer_leave()
        assert presenter.selection.pending_hide_at == pytest.approx(0.1)

        scheduler.advance(0.05)
        assert presenter.state == PresenterState.TOOLTIP

        scheduler.advance(0.05)
        assert presenter.state == PresenterState.IDLE
        assert presenter.selection.active_sample is None
        assert renderer.panel is None
        assert renderer.markers == []
        assert events[-1].mode == SelectionMode.NONE

    def test_reentry_cancels_hide(self, presenter, scheduler):
        presenter.pointer_move(TODAY_X, 300)
        presenter.pointer_leave()
        presenter.pointer_move(TODAY_X, 300)

        assert presenter.selection.pending_hide_at is None
        scheduler.advance(1.0)
        assert presenter.state == PresenterState.TOOLTIP

    def test_leave_while_idle(self, presenter, scheduler):
        presenter.pointer_leave()
        assert scheduler.pending == 0

    def test_single_pending_hide(self, presenter, scheduler):
        presenter.pointer_move(TODAY_X, 300)
        presenter.pointer_leave()
        presenter.pointer_leave()
        assert scheduler.pending == 1

    def test_touch_ignored_on_desktop(self, presenter):
        presenter.touch_start(TODAY_X, 300)
        assert presenter.state == PresenterState.IDLE

    def test_no_datasets(self, renderer, scheduler):
        presenter = SelectionPresenter(renderer, scheduler, viewport=DESKTOP)
        presenter.pointer_move(10, 10)
        assert presenter.state == PresenterState.IDLE

    def test_set_datasets_resets(self, presenter, renderer, datasets):
        presenter.pointer_move(TODAY_X, 300)
        presenter.set_datasets(datasets[:1])
        assert presenter.state == PresenterState.IDLE
        assert renderer.panel is None

    def test_device_flip_resets(self, presenter, renderer, scheduler):
        presenter.pointer_move(TODAY_X, 300)
        presenter.pointer_leave()
        presenter.set_viewport(MOBILE)

        assert presenter.device_mode == DeviceMode.MOBILE
        assert presenter.state == PresenterState.IDLE
        assert scheduler.pending == 0
        assert renderer.panel is None

    def test_resize_within_mode_keeps_selection(self, presenter):
        presenter.pointer_move(TODAY_X, 300)
        presenter.set_viewport(Size(900, 600))
        assert presenter.state == PresenterState.TOOLTIP


class TestSelectionPresenterMobile:
    """Tests for tap and bottom sheet behaviour."""

    @pytest.fixture
    def scheduler(self):
        return ManualScheduler()

    @pytest.fixture
    def presenter(self, renderer, scheduler, linear_series, make_location):
        primary = make_location("New York, NY", primary=True, offset=-5)
        other = make_location("Oslo, Norway", lat=59.91, lng=10.75, offset=1)
        datasets = [Dataset(other, linear_series), Dataset(primary, linear_series)]
        renderer.render(datasets)
        presenter = SelectionPresenter(renderer, scheduler, InteractionConfig(), MOBILE)
        presenter.set_datasets(datasets)
        return presenter

    def test_tap_opens_sheet_for_primary(self, presenter, renderer):
        presenter.touch_start(TODAY_X, 400)

        assert presenter.state == PresenterState.SHEET
        assert presenter.selection.mode == SelectionMode.SHEET
        assert renderer.panel.mode == PanelMode.SHEET
        assert [line.name for line in renderer.panel.content.lines] == ["New York"]
        assert len(renderer.markers) == 2

    def test_pointer_ignored_on_mobile(self, presenter):
        presenter.pointer_move(TODAY_X, 400)
        assert presenter.state == PresenterState.IDLE

    def test_touch_move_does_not_change_selection(self, presenter):
        presenter.touch_start(TODAY_X, 400)
        presenter.touch_move(TODAY_X + 30, 400)
        presenter.touch_end()
        assert presenter.selection.active_sample.date == REFERENCE_DATE

    def test_second_tap_moves_selection(self, presenter):
        presenter.touch_start(TODAY_X, 400)
        presenter.touch_start(TODAY_X + 30, 400)
        assert presenter.selection.active_sample.date == REFERENCE_DATE + datetime.timedelta(days=30)

    def test_short_drag_keeps_sheet(self, presenter):
        presenter.touch_start(TODAY_X, 400)
        assert presenter.close(drag_distance=50) is False
        assert presenter.state == PresenterState.SHEET

    def test_long_drag_closes(self, presenter, renderer):
        presenter.touch_start(TODAY_X, 400)
        assert presenter.close(drag_distance=120) is True
        assert presenter.state == PresenterState.IDLE
        assert renderer.panel is None

    def test_close_button(self, presenter):
        presenter.touch_start(TODAY_X, 400)
        assert presenter.close() is True
        assert presenter.selection.mode == SelectionMode.NONE

    def test_tap_outside(self, presenter):
        presenter.touch_start(TODAY_X, 400)
        presenter.tap_outside()
        assert presenter.state == PresenterState.IDLE
