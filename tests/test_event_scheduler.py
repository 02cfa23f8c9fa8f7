from midi_player.core.event_scheduler import EventScheduler, schedule
from midi_player.core.midi_events import MetaEndOfTrack, NoteOff, NoteOn
from midi_player.core.midi_parser import parse
from midi_player.core.tempo_map import build_tempo_map

from midi_fixtures import end_of_track, note_off, note_on, smf, tempo


def _chord_timeline():
    # Both tracks have events at ticks 0 and 480
    return parse(smf([
        note_on(0, 60) + note_off(480, 60) + end_of_track(),
        note_on(0, 64) + note_on(0, 67) + note_off(480, 64) + note_off(0, 67) + end_of_track(),
    ]))


def test_schedule_orders_by_tick_then_track_then_position() -> None:
    timeline = _chord_timeline()
    events = schedule(timeline, build_tempo_map(timeline), 0)

    assert [(e.tick, e.track_index, e.event_index) for e in events] == [
        (0, 0, 0), (0, 1, 0), (0, 1, 1),
        (480, 0, 1), (480, 0, 2),
        (480, 1, 2), (480, 1, 3), (480, 1, 4),
    ]
    assert [e.time_us for e in events] == [0, 0, 0] + [500_000] * 5


def test_schedule_window_is_half_open() -> None:
    timeline = _chord_timeline()
    tempo_map = build_tempo_map(timeline)

    assert {e.tick for e in schedule(timeline, tempo_map, 0, 480)} == {0}
    assert {e.tick for e in schedule(timeline, tempo_map, 480, 481)} == {480}
    assert schedule(timeline, tempo_map, 1, 480) == []


def test_schedule_track_filter() -> None:
    timeline = _chord_timeline()
    events = schedule(timeline, build_tempo_map(timeline), 0, tracks=[1])

    assert {e.track_index for e in events} == {1}
    assert len(events) == len(timeline.tracks[1])


def test_every_note_scheduled_exactly_once() -> None:
    timeline = _chord_timeline()
    tempo_map = build_tempo_map(timeline)
    windows = [(0, 100), (100, 480), (480, 481), (481, 10_000)]

    collected = [e for start, end in windows for e in schedule(timeline, tempo_map, start, end)]
    notes = [(e.track_index, e.event_index) for e in collected
             if isinstance(e.kind, (NoteOn, NoteOff))]

    assert len(notes) == len(set(notes)) == 6


def test_scheduler_duration_uses_tempo_changes() -> None:
    timeline = parse(smf([tempo(0, 250_000) + note_on(0, 60) + note_off(960, 60) + end_of_track()]))
    scheduler = EventScheduler(timeline)

    assert scheduler.duration_us == 500_000


def test_scheduler_duration_of_empty_timeline() -> None:
    timeline = parse(smf([]))

    assert EventScheduler(timeline).duration_us == 0


def test_format_2_tracks_have_independent_tempo() -> None:
    timeline = parse(smf([
        tempo(0, 250_000) + note_on(0, 60) + note_off(480, 60) + end_of_track(),
        note_on(0, 72) + note_off(480, 72) + end_of_track(),
    ], file_format=2))
    scheduler = EventScheduler(timeline)

    assert scheduler.tick_to_us(0, 480) == 250_000
    assert scheduler.tick_to_us(1, 480) == 500_000
    assert scheduler.duration_us == 500_000

    due = scheduler.due_events([0, 0], 300_000)
    assert [(e.track_index, e.tick) for e in due] == [(0, 0), (0, 0), (1, 0), (0, 480), (0, 480)]
    assert isinstance(due[-1].kind, MetaEndOfTrack)


def test_due_events_start_at_cursors() -> None:
    timeline = _chord_timeline()
    scheduler = EventScheduler(timeline)

    due = scheduler.due_events([1, 2], 499_999)
    assert due == []

    due = scheduler.due_events([1, 2], 500_000)
    assert [(e.track_index, e.event_index) for e in due] == [(0, 1), (0, 2), (1, 2), (1, 3), (1, 4)]


def test_due_events_with_exhausted_tracks() -> None:
    timeline = _chord_timeline()
    scheduler = EventScheduler(timeline)

    assert scheduler.due_events([3, 5], 10_000_000) == []
