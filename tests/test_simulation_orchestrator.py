"""Tests for the simulation orchestrator and the first-success race."""

import asyncio

import httpx
import openai
import pytest

from dsd.llm.client import MockLLMClient
from dsd.models.llm import ImageEditResponse
from dsd.simulation.orchestrator import SimulationOrchestrator
from dsd.storage.memory import InMemoryObjectStorage
from dsd.utils.concurrency import first_successful


def _timeout_error() -> openai.APITimeoutError:
    request = httpx.Request("POST", "https://openrouter.ai/api/v1/chat/completions")
    return openai.APITimeoutError(request=request)


class ScriptedImageClient(MockLLMClient):
    """Image client whose n-th call follows a (delay, outcome) script."""

    def __init__(self, script):
        super().__init__()
        self.script = list(script)
        self.cancelled = 0

    async def edit_image(self, model, prompt, image, mime_type="image/jpeg",
                         temperature=0.4, seed=None, timeout=None):
        index = len(self.calls)
        self.calls.append({"method": "edit_image", "model": model, "seed": seed})
        delay, outcome = self.script[index]
        try:
            await asyncio.sleep(delay)
        except asyncio.CancelledError:
            self.cancelled += 1
            raise
        if isinstance(outcome, Exception):
            raise outcome
        return ImageEditResponse(model=model, image_data=outcome)


# ============================================================================
# Race primitive
# ============================================================================

class TestFirstSuccessful:
    """Tests for first_successful."""

    @pytest.mark.asyncio
    async def test_returns_first_success_and_ignores_failures(self):
        """Test that failures before and after the winner are ignored."""
        async def fail_fast():
            await asyncio.sleep(0.01)
            raise RuntimeError("boom")

        async def succeed():
            await asyncio.sleep(0.02)
            return "winner"

        async def fail_slow():
            await asyncio.sleep(0.05)
            raise RuntimeError("late boom")

        assert await first_successful([fail_fast(), succeed(), fail_slow()]) == "winner"

    @pytest.mark.asyncio
    async def test_none_results_do_not_win(self):
        """Test that None results are treated as failures."""
        async def nothing():
            return None

        async def something():
            await asyncio.sleep(0.01)
            return 42

        assert await first_successful([nothing(), something()]) == 42

    @pytest.mark.asyncio
    async def test_all_fail_returns_none(self):
        """Test that an all-failed race resolves to None."""
        async def fail():
            raise RuntimeError("boom")

        assert await first_successful([fail(), fail()]) is None

    @pytest.mark.asyncio
    async def test_losers_cancelled(self):
        """Test that tasks still running after the winner are cancelled."""
        cancelled = asyncio.Event()

        async def fast():
            return "fast"

        async def slow():
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.set()
                raise

        assert await first_successful([fast(), slow()]) == "fast"
        await asyncio.sleep(0.01)
        assert cancelled.is_set()


# ============================================================================
# Orchestrator
# ============================================================================

class TestSimulationOrchestrator:
    """Tests for SimulationOrchestrator.generate."""

    @pytest.mark.asyncio
    async def test_second_attempt_wins(self, photo, make_assessment, make_finding):
        """Test that attempt 2 finishing first wins while attempts 1 and 3 fail later."""
        client = ScriptedImageClient([
            (0.05, _timeout_error()),
            (0.01, b"variation-2"),
            (0.05, RuntimeError("model crashed")),
        ])
        storage = InMemoryObjectStorage()
        orchestrator = SimulationOrchestrator(client, storage, models=["image-a"], variation_count=3)

        outcome = await orchestrator.generate(
            photo, make_assessment(suggestions=[make_finding()]), actor_id="user-1",
        )

        assert outcome.path.startswith("user-1/dsd_")
        assert outcome.path.endswith("_v2.png")
        assert outcome.variation == 2
        assert outcome.lips_moved is None
        assert storage.objects[("dsd-simulations", outcome.path)][0] == b"variation-2"

    @pytest.mark.asyncio
    async def test_falls_back_to_next_model(self, photo, make_assessment):
        """Test that an attempt tries the next model after a failure."""
        client = MockLLMClient(image_responses={
            "image-a": _timeout_error(),
            "image-b": b"from-b",
        })
        storage = InMemoryObjectStorage()
        orchestrator = SimulationOrchestrator(
            client, storage, models=["image-a", "image-b"], variation_count=1,
        )

        outcome = await orchestrator.generate(photo, make_assessment(), actor_id="user-1")

        assert outcome.path.endswith("_v1.png")
        assert outcome.model == "image-b"
        assert [c["model"] for c in client.calls] == ["image-a", "image-b"]

    @pytest.mark.asyncio
    async def test_unexpected_error_falls_back_to_next_model(self, photo, make_assessment):
        """Test that a non-HTTP error from the first model still moves on to the next one."""
        client = MockLLMClient(image_responses={
            "image-a": IndexError("list index out of range"),
            "image-b": b"from-b",
        })
        orchestrator = SimulationOrchestrator(
            client, InMemoryObjectStorage(), models=["image-a", "image-b"], variation_count=1,
        )

        outcome = await orchestrator.generate(photo, make_assessment(), actor_id="u")

        assert [c["model"] for c in client.calls] == ["image-a", "image-b"]
        assert outcome is not None
        assert outcome.model == "image-b"

    @pytest.mark.asyncio
    async def test_missing_image_counts_as_failure(self, photo, make_assessment):
        """Test that a response without an image moves on to the next model."""
        client = MockLLMClient(image_responses={"image-a": None, "image-b": b"ok"})
        orchestrator = SimulationOrchestrator(
            client, InMemoryObjectStorage(), models=["image-a", "image-b"], variation_count=1,
        )

        assert await orchestrator.generate(photo, make_assessment(), actor_id="u") is not None

    @pytest.mark.asyncio
    async def test_all_fail_returns_none(self, photo, make_assessment):
        """Test that the orchestrator returns None instead of raising."""
        client = MockLLMClient(image_responses={
            "image-a": _timeout_error(),
            "image-b": _timeout_error(),
        })
        orchestrator = SimulationOrchestrator(
            client, InMemoryObjectStorage(), models=["image-a", "image-b"], variation_count=3,
        )

        assert await orchestrator.generate(photo, make_assessment(), actor_id="u") is None
        assert len(client.calls) == 6

    @pytest.mark.asyncio
    async def test_upload_failure_returns_none(self, photo, make_assessment):
        """Test that storage rejections are absorbed."""
        orchestrator = SimulationOrchestrator(
            MockLLMClient(), InMemoryObjectStorage(fail=True), models=["image-a"], variation_count=2,
        )

        assert await orchestrator.generate(photo, make_assessment(), actor_id="u") is None

    @pytest.mark.asyncio
    async def test_variations_use_distinct_seeds(self, photo, make_assessment):
        """Test that each variation gets its own seed."""
        client = MockLLMClient(image_responses={"image-a": _timeout_error()})
        orchestrator = SimulationOrchestrator(
            client, InMemoryObjectStorage(), models=["image-a"], variation_count=3,
        )

        await orchestrator.generate(photo, make_assessment(), actor_id="u")

        seeds = {c["seed"] for c in client.calls}
        assert len(seeds) == 3

    @pytest.mark.asyncio
    async def test_call_timeout_has_floor(self, photo, make_assessment):
        """Test that per-call timeouts never drop below the minimum."""
        client = MockLLMClient()
        orchestrator = SimulationOrchestrator(
            client,
            InMemoryObjectStorage(),
            models=["image-a"],
            variation_count=1,
            mode_timeouts={"standard": 5.0},
            min_call_timeout=15.0,
        )

        await orchestrator.generate(photo, make_assessment(), actor_id="u")

        assert client.calls[0]["timeout"] == 15.0

    def test_requires_models(self):
        """Test that an empty model list is rejected."""
        with pytest.raises(ValueError):
            SimulationOrchestrator(MockLLMClient(), InMemoryObjectStorage(), models=[])
