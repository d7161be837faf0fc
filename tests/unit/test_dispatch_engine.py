"""Unit tests for DispatchEngine and Runner — fan-out, filtering, isolation."""

from __future__ import annotations

import threading

import pytest

from runnel.engine.deferral import ImmediateDeferrer, ThreadPoolDeferrer
from runnel.engine.dispatch import DispatchEngine
from runnel.engine.reporting import CallbackOutcomeSink, QueueOutcomeSink
from runnel.engine.runner import Runner
from runnel.models.context import (
    EXCEPTION_KEY,
    FILTERED_BY_KEY,
    FILTERED_TYPE_KEY,
    INTAKE_KEY,
    MESSAGE_KEY,
    MESSAGE_TYPE_KEY,
    OK,
    SERVER_ERROR,
    Result,
)
from runnel.pipeline.chain import compose
from runnel.routing.table import RouteTable
from tests.doubles import ExplodingHandler, LoggingStage, RecordingHandler, TypedMessage


class _DeferredQueue:
    """A deferrer that holds tasks until ``run_all`` is called."""

    def __init__(self) -> None:
        self.tasks: list = []

    def defer(self, task) -> None:
        self.tasks.append(task)

    def run_all(self) -> None:
        tasks, self.tasks = self.tasks, []
        for task in tasks:
            task()


def _single_sink_table(handler, intakes=("intake_1", "intake_2")) -> RouteTable:
    table = RouteTable()
    table.declare_intake(list(intakes), lambda i: i.flow_to("sink_1"))
    table.declare_sink("sink_1", lambda s: s.run(handler))
    return table


# ---------------------------------------------------------------------------
# Test: publish
# ---------------------------------------------------------------------------


class TestPublish:
    """publish must reach every pipeline of every named intake."""

    def test_publish_to_one_intake(self):
        handler = RecordingHandler()
        engine = DispatchEngine(_single_sink_table(handler).compile())

        engine.publish("pingy pong", "intake_1")

        assert handler.calls == 1
        assert handler.contexts[0] == {MESSAGE_KEY: "pingy pong", INTAKE_KEY: "intake_1"}

    def test_publish_to_multiple_intakes(self):
        handler = RecordingHandler()
        engine = DispatchEngine(_single_sink_table(handler).compile())

        scheduled = engine.publish("pingy pong", "intake_1", "intake_2")

        assert scheduled == 2
        assert [ctx.intake_name for ctx in handler.contexts] == ["intake_1", "intake_2"]

    def test_publish_without_intake_uses_default(self):
        handler = RecordingHandler()
        engine = DispatchEngine(_single_sink_table(handler, intakes=("default",)).compile())

        engine.publish("hello")

        assert handler.calls == 1
        assert handler.contexts[0].intake_name == "default"

    def test_custom_default_intake(self):
        handler = RecordingHandler()
        engine = DispatchEngine(
            _single_sink_table(handler, intakes=("main",)).compile(), default_intake="main"
        )

        engine.publish("hello")

        assert handler.calls == 1

    def test_unknown_intake_is_silent_noop(self, successes, errors):
        handler = RecordingHandler()
        engine = DispatchEngine(
            _single_sink_table(handler).compile(), on_success=successes, on_error=errors
        )

        scheduled = engine.publish("hello", "nobody_listens")

        assert scheduled == 0
        assert handler.calls == 0
        assert successes.drain() == []
        assert errors.drain() == []

    def test_message_type_recorded_when_exposed(self):
        handler = RecordingHandler()
        engine = DispatchEngine(_single_sink_table(handler).compile())

        engine.publish(TypedMessage("MyMessageType"), "intake_1")

        assert handler.contexts[0][MESSAGE_TYPE_KEY] == "MyMessageType"

    def test_callable_message_type_is_called(self):
        class Message:
            def message_type(self) -> str:
                return "callable"

        handler = RecordingHandler()
        engine = DispatchEngine(_single_sink_table(handler).compile())

        engine.publish(Message(), "intake_1")

        assert handler.contexts[0].message_type == "callable"

    def test_message_type_omitted_when_absent(self):
        handler = RecordingHandler()
        engine = DispatchEngine(_single_sink_table(handler).compile())

        engine.publish({"plain": "dict"}, "intake_1")
        engine.publish(TypedMessage(None), "intake_1")

        assert all(MESSAGE_TYPE_KEY not in ctx for ctx in handler.contexts)

    def test_each_dispatch_gets_its_own_context(self):
        first, second = RecordingHandler(), RecordingHandler()
        table = RouteTable()
        table.declare_intake("i", lambda i: i.flow_to("a", "b"))
        table.declare_sink("a", lambda s: s.run(first))
        table.declare_sink("b", lambda s: s.run(second))
        engine = DispatchEngine(table.compile())

        engine.publish("m", "i")

        assert first.contexts[0] == second.contexts[0]
        assert first.contexts[0] is not second.contexts[0]

    def test_introspection(self):
        engine = DispatchEngine(_single_sink_table(RecordingHandler()).compile())
        assert sorted(engine.intake_names) == ["intake_1", "intake_2"]
        assert engine.subscriber_count("intake_1") == 1
        assert engine.subscriber_count("missing") == 0


# ---------------------------------------------------------------------------
# Test: outcome reporting
# ---------------------------------------------------------------------------


class TestOutcomeReporting:
    def test_success_result_reported(self, successes):
        expected = Result(200, {}, [""])
        handler = RecordingHandler(expected)
        engine = DispatchEngine(_single_sink_table(handler).compile(), on_success=successes)

        engine.publish("pingy pong", "intake_1")

        assert successes.drain() == [expected]

    def test_error_result_reported(self, successes, errors):
        boom = RuntimeError("boom")
        engine = DispatchEngine(
            _single_sink_table(ExplodingHandler(boom)).compile(),
            on_success=successes,
            on_error=errors,
        )

        engine.publish("pingy pong", "intake_1")

        reported = errors.drain()
        assert reported == [
            (
                SERVER_ERROR,
                {MESSAGE_KEY: "pingy pong", INTAKE_KEY: "intake_1", EXCEPTION_KEY: boom},
                [],
            )
        ]
        assert successes.drain() == []

    def test_failure_without_error_sink_is_discarded(self, successes):
        engine = DispatchEngine(
            _single_sink_table(ExplodingHandler()).compile(), on_success=successes
        )

        engine.publish("m", "intake_1")

        assert successes.drain() == []

    def test_stage_failure_is_reported(self, errors):
        def exploding_stage(inner):
            def invoke(context):
                raise ValueError("stage broke")

            return invoke

        handler = RecordingHandler()
        table = RouteTable()
        table.declare_intake("i", lambda i: i.flow_to("s"))
        table.declare_sink("s", lambda s: s.use(exploding_stage).run(handler))
        engine = DispatchEngine(table.compile(), on_error=errors)

        engine.publish("m", "i")

        reported = errors.drain()
        assert len(reported) == 1
        assert isinstance(reported[0].metadata[EXCEPTION_KEY], ValueError)
        assert handler.calls == 0

    def test_failing_success_sink_is_reported_as_error(self, errors):
        def reject(result):
            raise OSError("success sink down")

        engine = DispatchEngine(
            _single_sink_table(RecordingHandler()).compile(),
            on_success=CallbackOutcomeSink(reject),
            on_error=errors,
        )

        engine.publish("m", "intake_1")

        assert isinstance(errors.drain()[0].metadata[EXCEPTION_KEY], OSError)

    def test_failing_error_sink_does_not_reach_publisher(self):
        def reject(result):
            raise OSError("error sink down")

        engine = DispatchEngine(
            _single_sink_table(ExplodingHandler()).compile(),
            on_error=CallbackOutcomeSink(reject),
        )

        assert engine.publish("m", "intake_1") == 1


# ---------------------------------------------------------------------------
# Test: isolation
# ---------------------------------------------------------------------------


class TestFailureIsolation:
    """One sink's failure must not affect siblings or the publisher."""

    def test_siblings_complete_when_one_sink_raises(self, successes, errors):
        before, after = RecordingHandler(), RecordingHandler()
        table = RouteTable()
        table.declare_intake("i", lambda i: i.flow_to("before", "broken", "after"))
        table.declare_sink("before", lambda s: s.run(before))
        table.declare_sink("broken", lambda s: s.run(ExplodingHandler()))
        table.declare_sink("after", lambda s: s.run(after))
        engine = DispatchEngine(table.compile(), on_success=successes, on_error=errors)

        engine.publish("m", "i")

        assert before.calls == 1
        assert after.calls == 1
        assert len(successes.drain()) == 2
        assert len(errors.drain()) == 1

    def test_failing_type_accessor_is_reported_per_dispatch(self, successes, errors):
        class BrokenType:
            @property
            def message_type(self):
                raise ValueError("type lookup failed")

        first, second = RecordingHandler(), RecordingHandler()
        table = RouteTable()
        table.declare_intake("i", lambda i: i.flow_to("a", "b"))
        table.declare_sink("a", lambda s: s.run(first))
        table.declare_sink("b", lambda s: s.run(second))
        engine = DispatchEngine(table.compile(), on_success=successes, on_error=errors)
        message = BrokenType()

        assert engine.publish(message, "i") == 2

        reported = errors.drain()
        assert len(reported) == 2
        for result in reported:
            assert result.status == SERVER_ERROR
            assert result.metadata[MESSAGE_KEY] is message
            assert result.metadata[INTAKE_KEY] == "i"
            assert isinstance(result.metadata[EXCEPTION_KEY], ValueError)
        assert first.calls == 0
        assert second.calls == 0
        assert successes.drain() == []

    @pytest.mark.parametrize("exc_type", [RuntimeError, ValueError, KeyError, TypeError])
    def test_various_exception_types_are_caught(self, exc_type, errors):
        engine = DispatchEngine(
            _single_sink_table(ExplodingHandler(exc_type("x"))).compile(), on_error=errors
        )
        engine.publish("m", "intake_1")
        assert errors.drain()[0].status == SERVER_ERROR


# ---------------------------------------------------------------------------
# Test: deferral and guard
# ---------------------------------------------------------------------------


class TestDeferral:
    def test_publish_returns_before_pipelines_run(self):
        handler = RecordingHandler()
        deferrer = _DeferredQueue()
        engine = DispatchEngine(_single_sink_table(handler).compile(), deferrer=deferrer)

        engine.publish("m", "intake_1", "intake_2")

        assert handler.calls == 0
        assert len(deferrer.tasks) == 2
        deferrer.run_all()
        assert handler.calls == 2

    def test_dispatches_start_in_subscription_order(self):
        started: list[str] = []
        table = RouteTable()
        table.declare_intake("i", lambda i: i.flow_to("a", "b", "c"))
        for name in ("a", "b", "c"):
            table.declare_sink(
                name,
                lambda s, n=name: s.run(lambda ctx, n=n: started.append(n) or Result.ok()),
            )
        engine = DispatchEngine(table.compile(), deferrer=ImmediateDeferrer())

        engine.publish("m", "i")

        assert started == ["a", "b", "c"]

    def test_guard_runs_once_per_dispatch(self):
        log: list[str] = []
        table = RouteTable()
        table.declare_intake(["x", "y"], lambda i: i.flow_to("a", "b"))
        table.declare_sink("a")
        table.declare_sink("b")
        table.declare_guard(lambda g: g.use(LoggingStage, log, "guard"))
        engine = DispatchEngine(table.compile())

        engine.publish("m", "x", "y")

        assert log == ["guard"] * 4


class TestRunner:
    def test_run_returns_outcome(self):
        handler = RecordingHandler()
        runner = Runner(compose([], handler), "i", ImmediateDeferrer())
        assert runner.run("m") == handler.result

    def test_run_returns_error_result_on_failure(self):
        runner = Runner(compose([], ExplodingHandler()), "i", ImmediateDeferrer())
        result = runner.run("m")
        assert result.status == SERVER_ERROR
        assert result.metadata[INTAKE_KEY] == "i"


# ---------------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------------


class TestOrdersScenario:
    """billing takes everything; audit only takes refunds."""

    @pytest.fixture
    def handlers(self) -> dict[str, RecordingHandler]:
        return {"billing": RecordingHandler(), "audit": RecordingHandler()}

    @pytest.fixture
    def engine(self, handlers, successes, errors) -> DispatchEngine:
        table = RouteTable()
        table.declare_intake("orders", lambda i: i.flow_to("billing"))
        table.declare_intake("orders", lambda i: i.flow_to("audit", when={"refund"}))
        table.declare_sink("billing", lambda s: s.run(handlers["billing"]))
        table.declare_sink("audit", lambda s: s.run(handlers["audit"]))
        return DispatchEngine(table.compile(), on_success=successes, on_error=errors)

    def test_purchase_reaches_billing_only(self, engine, handlers, successes, errors, make_message):
        engine.publish(make_message("purchase"), "orders")

        assert handlers["billing"].calls == 1
        assert handlers["audit"].calls == 0

        results = successes.drain()
        filtered = [r for r in results if FILTERED_BY_KEY in r.metadata]
        assert len(results) == 2
        assert len(filtered) == 1
        assert filtered[0].status == OK
        assert filtered[0].metadata[FILTERED_TYPE_KEY] == "purchase"
        assert errors.drain() == []

    def test_refund_reaches_both(self, engine, handlers, make_message):
        engine.publish(make_message("refund"), "orders")

        assert handlers["billing"].calls == 1
        assert handlers["audit"].calls == 1


class TestConcurrentReporting:
    def test_thread_pool_reports_every_outcome(self):
        successes = QueueOutcomeSink()
        lock = threading.Lock()
        seen: list[int] = []

        def handler(context):
            with lock:
                seen.append(context.message)
            return Result.ok()

        table = RouteTable()
        table.declare_intake("i", lambda i: i.flow_to("a", "b"))
        table.declare_sink("a", lambda s: s.run(handler))
        table.declare_sink("b", lambda s: s.run(handler))

        with ThreadPoolDeferrer(max_workers=4) as deferrer:
            engine = DispatchEngine(table.compile(), deferrer=deferrer, on_success=successes)
            for n in range(25):
                engine.publish(n, "i")

        assert len(successes.drain()) == 50
        assert sorted(seen) == sorted(list(range(25)) * 2)
