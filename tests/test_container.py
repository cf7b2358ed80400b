"""Tests for container wiring."""

import asyncio

from nutriai.containers import build_container


def test_build_container_creates_services(settings) -> None:
    container = build_container(settings)
    assert container.analysis_service is not None
    assert container.refinement_service.extraction_service.model == "gpt-4o-mini"
    assert container.analysis_service.preview_caller_id == "preview"
    asyncio.run(container.close_resources())
