"""Tests for container wiring."""

import asyncio
from uuid import uuid4

import pytest

from date_planner.adapters.openai_compatibility_client import OpenAICompatibilityClient
from date_planner.adapters.recommendation_client import HttpxRecommendationClient
from date_planner.config import Settings
from date_planner.containers import build_container


def test_build_container_creates_services(settings: Settings) -> None:
    container = build_container(settings)
    assert container.session_service is not None
    assert container.session_service.session_ttl.total_seconds() == 24 * 3600
    assert isinstance(container.recommendation_engine, HttpxRecommendationClient)
    assert container.recommendation_engine.function_url == (
        "https://example.supabase.co/functions/v1/analyze-compatibility"
    )
    user_id = uuid4()
    propagator = container.session_propagator(user_id)
    assert propagator.gate is container.analysis_gate
    assert propagator.user_id == user_id
    asyncio.run(container.close_resources())


def test_build_container_with_openai_backend(settings: Settings) -> None:
    configured = settings.model_copy(
        update={"recommendation_backend": "openai", "openai_api_key": "sk-test"}
    )

    container = build_container(configured)

    assert isinstance(container.recommendation_engine, OpenAICompatibilityClient)
    assert container.recommendation_engine.model == "gpt-5.2"
    asyncio.run(container.close_resources())


def test_openai_backend_requires_api_key(settings: Settings) -> None:
    configured = settings.model_copy(
        update={"recommendation_backend": "openai", "openai_api_key": None}
    )

    with pytest.raises(ValueError, match="openai_api_key"):
        build_container(configured)
