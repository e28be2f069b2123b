"""Wiring for the research agent and a one-shot helper for scripts and evals."""

from typing import Any

from api.openai_client import OpenAIReasoningEngine
from config.config import Config
from orchestrator.agent_loop import AgentLoop
from orchestrator.tools import RetrievalTools
from tools.web import create_crawler, create_search_client
from utils.telemetry import create_telemetry


def create_retrieval_tools(config: Config) -> RetrievalTools:
    telemetry = create_telemetry(config.TELEMETRY_ENABLED)
    return RetrievalTools(
        search_client=create_search_client(config),
        crawler=create_crawler(config),
        search_results_count=config.SEARCH_RESULTS_COUNT,
        telemetry=telemetry,
    )


def create_agent_loop(config: Config | None = None) -> AgentLoop:
    """
    Build an AgentLoop from configuration.

    Raises:
        ValueError: If OPENAI_API_KEY or SERPER_API_KEY is missing
    """
    config = config or Config()
    engine = OpenAIReasoningEngine(
        api_key=config.OPENAI_API_KEY or "",
        model_name=config.DEFAULT_MODEL,
        base_url=config.OPENAI_BASE_URL,
    )
    return AgentLoop(
        engine=engine,
        tools=create_retrieval_tools(config),
        step_limit=config.AGENT_STEP_LIMIT,
        telemetry=create_telemetry(config.TELEMETRY_ENABLED),
        scrape_urls_count=config.SCRAPE_URLS_COUNT,
    )


async def ask_deep_search(messages: list[dict[str, Any]], loop: AgentLoop | None = None) -> str:
    """Run the agent to completion on `messages` and return the final answer text."""
    owns_loop = loop is None
    loop = loop or create_agent_loop()
    try:
        result = await loop.run(messages)
    finally:
        if owns_loop:
            await loop.engine.aclose()
            await loop.tools.aclose()
    return result.text
