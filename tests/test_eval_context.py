"""Tests for per-pass evaluation context and iteration frames."""

import asyncio
import threading

import pytest

from skema import MISSING, EvaluationContext, check_scope, evaluation_context, get_evaluation_context
from skema.eval_context import ensure_evaluation_context


class TestEvaluationContext:
    def test_no_context_outside_pass(self):
        assert get_evaluation_context() is None

    def test_context_is_current_inside_pass(self):
        with evaluation_context() as ctx:
            assert get_evaluation_context() is ctx
        assert get_evaluation_context() is None

    def test_nested_passes_restore_outer(self):
        with evaluation_context() as outer:
            with evaluation_context() as inner:
                assert get_evaluation_context() is inner
            assert get_evaluation_context() is outer

    def test_ensure_reuses_active_context(self):
        with evaluation_context() as ctx:
            with ensure_evaluation_context() as same:
                assert same is ctx

    def test_ensure_opens_context_when_missing(self):
        with ensure_evaluation_context() as ctx:
            assert get_evaluation_context() is ctx
        assert get_evaluation_context() is None


class TestFrames:
    def test_frame_push_and_pop(self):
        ctx = EvaluationContext()
        with ctx.frame({"item": 1}):
            assert ctx.depth == 1
            with ctx.frame({"item": 2}):
                assert ctx.depth == 2
        assert ctx.depth == 0
        assert ctx.max_depth == 2

    def test_frame_popped_on_exception(self):
        ctx = EvaluationContext()
        with pytest.raises(RuntimeError):
            with ctx.frame({"item": 1}):
                raise RuntimeError("boom")
        assert ctx.depth == 0

    def test_lookup_innermost_first(self):
        ctx = EvaluationContext()
        with ctx.frame({"item": "outer", "row": 1}):
            with ctx.frame({"item": "inner"}):
                assert ctx.lookup("item") == "inner"
                assert ctx.lookup("row") == 1

    def test_lookup_dotted(self):
        ctx = EvaluationContext()
        with ctx.frame({"user": {"name": "Ada"}}):
            assert ctx.lookup("user.name") == "Ada"

    def test_lookup_without_frames(self):
        assert EvaluationContext().lookup("item") is MISSING

    def test_frame_value_none_is_found(self):
        ctx = EvaluationContext()
        with ctx.frame({"item": None}):
            assert ctx.lookup("item") is None


class TestCheckScope:
    def test_passthrough_outside_pass(self):
        assert check_scope("resolved", "item") == "resolved"

    def test_passthrough_without_frames(self):
        with evaluation_context():
            assert check_scope("resolved", "item") == "resolved"

    def test_frame_shadows_resolved_value(self):
        with evaluation_context() as ctx, ctx.frame({"item": "looped"}):
            assert check_scope("resolved", "item") == "looped"

    def test_unrelated_token_keeps_value(self):
        with evaluation_context() as ctx, ctx.frame({"item": "looped"}):
            assert check_scope("resolved", "other") == "resolved"


def test_threads_do_not_share_frames():
    seen = {}
    barrier = threading.Barrier(2)

    def worker(name):
        with evaluation_context() as ctx, ctx.frame({"item": name}):
            barrier.wait()
            seen[name] = check_scope(None, "item")

    threads = [threading.Thread(target=worker, args=(name,)) for name in ("a", "b")]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert seen == {"a": "a", "b": "b"}


def test_tasks_do_not_share_frames():
    async def worker(name):
        with evaluation_context() as ctx, ctx.frame({"item": name}):
            await asyncio.sleep(0)
            return check_scope(None, "item")

    async def main():
        return await asyncio.gather(worker("a"), worker("b"))

    assert asyncio.run(main()) == ["a", "b"]
