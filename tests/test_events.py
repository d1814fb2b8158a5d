"""Tests for waypoint.events: listener registry and dispatch events."""

import logging

import pytest

from waypoint.events import EVENTS, DispatchResult, EventHub
from waypoint.http.response import Response
from waypoint.routing.router import Router
from waypoint.testing import TestClient


class TestEventHub:
    def test_emit_calls_listeners_in_order(self) -> None:
        hub = EventHub()
        calls: list[str] = []
        hub.on("end", lambda payload: calls.append(f"a:{payload}"))
        hub.on("end", lambda payload: calls.append(f"b:{payload}"))
        hub.emit("end", 1)
        assert calls == ["a:1", "b:1"]

    def test_unknown_event_rejected(self) -> None:
        with pytest.raises(ValueError, match="Unknown router event"):
            EventHub().on("finish", print)

    def test_off(self) -> None:
        hub = EventHub()
        calls: list[object] = []
        hub.on("body", calls.append)
        hub.off("body", calls.append)
        hub.off("body", print)
        hub.emit("body", b"x")
        assert calls == []

    def test_failing_listener_is_logged_and_skipped(self, caplog) -> None:
        hub = EventHub()
        calls: list[object] = []

        def broken(payload: object) -> None:
            raise RuntimeError("listener bug")

        hub.on("match", broken)
        hub.on("match", calls.append)
        with caplog.at_level(logging.ERROR, logger="waypoint.events"):
            hub.emit("match", "payload")

        assert calls == ["payload"]
        assert "failed" in caplog.text

    def test_known_events(self) -> None:
        assert EVENTS == {"evaluate", "match", "body", "error", "end"}


class TestDispatchEvents:
    @pytest.mark.asyncio
    async def test_evaluate_and_match(self) -> None:
        router = Router()
        router.get("/a", lambda ctx: Response("a"))
        router.get("/b", lambda ctx: Response("b"))
        router.get("/c", lambda ctx: Response("c"))

        evaluated: list[tuple[str, bool]] = []
        matched: list[str] = []
        router.on("evaluate", lambda ev: evaluated.append((ev.route.template, ev.matched)))
        router.on("match", lambda ev: matched.append(ev.route.template))

        await TestClient(router).get("/b")

        assert evaluated == [("/a", False), ("/b", True)]
        assert matched == ["/b"]

    @pytest.mark.asyncio
    async def test_end_carries_results(self) -> None:
        router = Router()
        router.get("/a", lambda ctx: Response("a"))
        ends: list[DispatchResult] = []
        errors: list[DispatchResult] = []
        router.on("end", ends.append)
        router.on("error", errors.append)

        await TestClient(router).get("/a")
        await TestClient(router).get("/missing")

        assert len(ends) == 2
        assert ends[0].error is None
        assert ends[0].matched is not None
        assert ends[0].matched.route.template == "/a"
        assert ends[1].matched is None
        assert errors == []

    @pytest.mark.asyncio
    async def test_error_event(self) -> None:
        router = Router()

        @router.get("/boom")
        def boom(ctx) -> None:
            raise KeyError("missing")

        errors: list[DispatchResult] = []
        router.on("error", errors.append)

        response = await TestClient(router).get("/boom")
        assert response.status == 404
        assert len(errors) == 1
        assert isinstance(errors[0].error.original, KeyError)

    @pytest.mark.asyncio
    async def test_decorator_subscription(self) -> None:
        router = Router()
        seen: list[object] = []

        @router.on("end")
        def record(result: DispatchResult) -> None:
            seen.append(result)

        await TestClient(router).get("/")
        assert len(seen) == 1

    @pytest.mark.asyncio
    async def test_broken_listener_does_not_break_dispatch(self) -> None:
        router = Router()
        router.get("/ok", lambda ctx: Response("fine"))
        router.on("match", lambda ev: 1 / 0)

        response = await TestClient(router).get("/ok")
        assert response.status == 200
        assert response.text == "fine"
