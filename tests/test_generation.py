"""Tests for the generation state machine, batching and replay."""

from __future__ import annotations

from tests.helpers import finish_generation
from wandboard.ai_client import NetworkError, ServiceUnavailable
from wandboard.models import Panel, Status
from wandboard.operations import LengthChange, NormalGeneration, PhotoGeneration, RequestKind, ToneChange


def test_start_enters_loading_and_issues_one_call(orchestrator, client, spawner) -> None:
    orchestrator.start(NormalGeneration(text="hello"))

    assert orchestrator.state.status is Status.LOADING
    assert len(spawner.jobs) == 1

    spawner.run_all()
    assert len(client.requests) == 1
    assert client.requests[0].kind is RequestKind.NORMAL
    assert client.requests[0].previous_outputs == ()


def test_first_batch_gets_indices_zero_and_one(orchestrator, client, spawner, loop) -> None:
    client.queue(("calm", "spicy"))

    orchestrator.start(NormalGeneration(text="hello"))
    finish_generation(spawner, loop)

    state = orchestrator.state
    assert state.status is Status.SUCCESS
    assert [(s.text, s.index) for s in state.suggestions] == [("calm", 0), ("spicy", 1)]
    assert orchestrator.batch_count == 1


def test_results_only_apply_on_the_ui_loop(orchestrator, spawner, loop) -> None:
    orchestrator.start(NormalGeneration(text="hello"))
    spawner.run_all()

    assert orchestrator.state.status is Status.LOADING
    loop.run_pending()
    assert orchestrator.state.status is Status.SUCCESS


def test_second_batch_is_prepended(orchestrator, client, spawner, loop) -> None:
    client.queue(("a0", "a1"), ("b0", "b1"))
    orchestrator.start(NormalGeneration(text="hello"))
    finish_generation(spawner, loop)

    orchestrator.retry()
    assert orchestrator.state.status is Status.LOADING_MORE
    finish_generation(spawner, loop)

    assert client.requests[1].previous_outputs == ("a0", "a1")
    assert [(s.text, s.index) for s in orchestrator.suggestions] == [
        ("b0", 2), ("b1", 3), ("a0", 0), ("a1", 1),
    ]
    assert orchestrator.batch_count == 2
    assert orchestrator.state.suggestions == orchestrator.suggestions


def test_retry_without_operation_is_a_noop(orchestrator, client, spawner) -> None:
    assert orchestrator.retry() is False

    assert spawner.jobs == []
    assert client.requests == []
    assert orchestrator.state.status is Status.IDLE


def test_failure_keeps_list_and_operation(orchestrator, client, spawner, loop) -> None:
    operation = NormalGeneration(text="hello")
    client.queue(("a0", "a1"), ServiceUnavailable("Backend on fire"))
    orchestrator.start(operation)
    finish_generation(spawner, loop)
    before = orchestrator.suggestions

    orchestrator.retry()
    finish_generation(spawner, loop)

    assert orchestrator.state.status is Status.ERROR
    assert orchestrator.state.message == "Backend on fire"
    assert orchestrator.suggestions == before
    assert orchestrator.current_operation == operation


def test_network_failure_uses_network_message(orchestrator, client, spawner, loop) -> None:
    client.queue(NetworkError())

    orchestrator.start(NormalGeneration(text="hello"))
    finish_generation(spawner, loop)

    assert orchestrator.state.status is Status.ERROR
    assert "Connection failed" in orchestrator.state.message


def test_unexpected_exception_becomes_error_state(orchestrator, client, spawner, loop) -> None:
    client.queue(RuntimeError("boom"))

    orchestrator.start(NormalGeneration(text="hello"))
    finish_generation(spawner, loop)

    assert orchestrator.state.status is Status.ERROR
    assert orchestrator.state.message == "Something went wrong"


def test_single_alternative_is_an_invalid_response(orchestrator, client, spawner, loop) -> None:
    client.queue(("only one",))

    orchestrator.start(NormalGeneration(text="hello"))
    finish_generation(spawner, loop)

    assert orchestrator.state.status is Status.ERROR
    assert orchestrator.state.message == "Received invalid response from AI"
    assert orchestrator.suggestions == ()


def test_unchanged_preferences_issue_no_call(orchestrator, client, spawner, loop) -> None:
    orchestrator.start(LengthChange(text="hello", length="long", tones=("playful", "casual")))
    finish_generation(spawner, loop)

    assert orchestrator.on_preferences_changed(["casual", "playful"], "long") is False
    assert spawner.jobs == []
    assert len(client.requests) == 1


def test_changed_length_issues_one_call_reusing_text(orchestrator, client, spawner, loop) -> None:
    orchestrator.start(ToneChange(text="see you soon", tones=("playful",)))
    finish_generation(spawner, loop)

    assert orchestrator.on_preferences_changed(["playful"], "short") is True
    finish_generation(spawner, loop)

    assert len(client.requests) == 2
    request = client.requests[1]
    assert request.kind is RequestKind.LENGTH
    assert request.text == "see you soon"
    assert request.length == "Short"
    assert request.tones == ("Playful",)
    assert orchestrator.current_operation == LengthChange(
        text="see you soon", length="short", tones=("playful",),
    )


def test_preference_change_without_operation_is_ignored(orchestrator, spawner) -> None:
    assert orchestrator.on_preferences_changed(["playful"], "long") is False
    assert spawner.jobs == []


def test_preference_change_keeps_photos(orchestrator, client, spawner, loop) -> None:
    orchestrator.start(PhotoGeneration(photos=("b64a",), context="beach day"))
    finish_generation(spawner, loop)

    orchestrator.on_preferences_changed(["confident"], None)
    finish_generation(spawner, loop)

    request = client.requests[1]
    assert request.kind is RequestKind.PHOTO
    assert request.photos == ("b64a",)
    assert request.context == "beach day"
    assert request.tones == ("Confident",)


def test_apply_suggestion_writes_text_and_hides_panel(orchestrator, panels, text_proxy) -> None:
    panels.show(Panel.SUGGESTIONS)

    orchestrator.apply_suggestion("new text")

    assert text_proxy.replaced == ["new text"]
    assert panels.visible is Panel.NONE


def test_reset_returns_to_idle(orchestrator, spawner, loop) -> None:
    orchestrator.start(NormalGeneration(text="hello"))
    finish_generation(spawner, loop)

    orchestrator.reset()

    assert orchestrator.state.status is Status.IDLE
    assert orchestrator.suggestions == ()
    assert orchestrator.current_operation is None
    assert orchestrator.batch_count == 0


def test_overlapping_calls_apply_in_completion_order(orchestrator, client, spawner, loop) -> None:
    client.queue(("first0", "first1"), ("second0", "second1"))
    orchestrator.start(NormalGeneration(text="one"))
    orchestrator.start(NormalGeneration(text="two"))

    # Complete the second call before the first.
    spawner.jobs.reverse()
    spawner.run_all()
    loop.run_pending()

    assert orchestrator.current_operation == NormalGeneration(text="two")
    assert orchestrator.state.status is Status.SUCCESS
    assert orchestrator.batch_count == 2


def test_listeners_receive_each_state(orchestrator, spawner, loop) -> None:
    seen: list[Status] = []
    orchestrator.add_listener(lambda state: seen.append(state.status))

    orchestrator.start(NormalGeneration(text="hello"))
    finish_generation(spawner, loop)

    assert seen == [Status.LOADING, Status.SUCCESS]
