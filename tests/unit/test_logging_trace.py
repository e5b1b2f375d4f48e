from __future__ import annotations

from storyroute.core.telemetry.logging import configure_logging, get_logger
from storyroute.core.telemetry.tracing import GenerationTrace, prompt_preview, recent_traces, trace_event


def test_trace_event_emits_structured_fields(capsys):
    configure_logging("INFO", json_logs=True)
    logger = get_logger("test.logger")
    ctx = GenerationTrace(request_id="req1", engine_id="character-engine-v2", provider="gemini", phase="primary")

    trace_event(logger, ctx, event="route_selected", status="ok", extra={"reason": "registry"})
    out = capsys.readouterr().out
    assert '"event": "route_selected"' in out
    assert '"request_id": "req1"' in out
    assert '"engine_id": "character-engine-v2"' in out
    assert '"provider": "gemini"' in out
    assert '"reason": "registry"' in out


def test_recent_traces_filters_by_request():
    logger = get_logger("test.logger")
    for request_id in ["a", "b", "a"]:
        trace_event(logger, GenerationTrace(request_id, "", "azure_openai", "primary"), event="provider_attempt", status="ok")

    only_a = recent_traces(request_id="a")
    assert len(only_a) == 2
    assert all(item["request_id"] == "a" for item in only_a)
    assert len(recent_traces(limit=1)) == 1


def test_prompt_preview_truncates_long_prompts():
    assert prompt_preview("short") == "short"
    preview = prompt_preview("x" * 250)
    assert preview.endswith("...")
    assert len(preview) == 103


def test_logger_carries_service_and_name(capsys):
    configure_logging("INFO", json_logs=True, service="writers-room")
    get_logger("storyroute.selector").warning("engine_unrecognized", engine_id="x")
    out = capsys.readouterr().out
    assert '"service": "writers-room"' in out
    assert '"logger": "storyroute.selector"' in out
    assert '"level": "warning"' in out
    configure_logging("INFO", json_logs=True)
