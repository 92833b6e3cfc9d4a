"""
Command line interface for the airdrop research desk.

Loads API keys from environment variables (via `.env`), picks the key-value
backend once, wires a ReportService and enters an interactive loop.
"""

import asyncio
import logging
import sys
from typing import Optional

from dotenv import load_dotenv

from analysis import AggregationError, ProviderError, ReportService, ReportServiceConfig
from analysis.provider import GroundedChatProvider
from analysis.settings import Settings
from domain.tracker import attach_analysis, new_project, task_progress
from storage import KeyValueStore, LocalKeyValueStore, ProjectRepository, RemoteKeyValueStore, StoreError

logger = logging.getLogger(__name__)

HELP_TEXT = (
    "Commands:\n"
    "  analyze <name>   deep-dive report (cached 24h)\n"
    "  refresh <name>   deep-dive report, bypassing the cache\n"
    "  quick <name>     lightweight AZ9 check\n"
    "  funding <name>   live funding report\n"
    "  track <name>     analyze and add to the tracker\n"
    "  projects         list tracked projects\n"
    "  history          recent searches\n"
    "  quit             exit\n"
)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def build_store(settings: Settings) -> KeyValueStore:
    """Choose the persistence backend once for the whole process."""
    if settings.remote_store_configured:
        logger.info("Using remote key-value store at %s", settings.kv_rest_api_url)
        return RemoteKeyValueStore(base_url=settings.kv_rest_api_url, token=settings.kv_rest_api_token)
    logger.info("Using local key-value store at %s", settings.local_store_path)
    return LocalKeyValueStore(settings.local_store_path)


def build_service(settings: Settings, store: KeyValueStore) -> ReportService:
    provider = GroundedChatProvider(
        openai_api_key=settings.openai_api_key or "",
        openai_model_name=settings.openai_model,
        openai_base_url=settings.openai_base_url,
        tavily_api_key=settings.tavily_api_key,
        tavily_max_results=settings.tavily_max_results,
    )
    return ReportService(
        ReportServiceConfig(provider=provider, store=store, segment_timeout=settings.segment_timeout)
    )


async def handle_command(service: ReportService, projects: ProjectRepository, line: str) -> Optional[str]:
    command, _, argument = line.partition(" ")
    command = command.lower()
    argument = argument.strip()

    if command in {"analyze", "refresh", "track"} and argument:
        analysis = await service.get_analysis(argument, force_refresh=command == "refresh")
        if command == "track":
            project = attach_analysis(new_project(argument), analysis)
            projects.save_project(project)
            return f"Tracking {project.name} as tier {project.tier} (id {project.id})."
        return analysis.model_dump_json(by_alias=True, indent=2)
    if command == "quick" and argument:
        return (await service.get_quick_analysis(argument)).model_dump_json(by_alias=True, indent=2)
    if command == "funding" and argument:
        return (await service.get_funding_report(argument)).model_dump_json(by_alias=True, indent=2)
    if command == "projects":
        tracked = projects.list_projects()
        if not tracked:
            return "No tracked projects yet."
        return "\n".join(
            f"[{p.tier}] {p.name} - {p.status} - {task_progress(p)}% tasks done" for p in tracked
        )
    if command == "history":
        entries = service.search_history()
        if not entries:
            return "No searches yet."
        return "\n".join(
            f"{item.query}" + (f" (score {item.score})" if item.score is not None else "") for item in entries
        )
    return HELP_TEXT


async def run_loop(service: ReportService, projects: ProjectRepository) -> None:
    print("\nWelcome to the Airdrop Research Desk!\n" + HELP_TEXT)

    while True:
        try:
            line = (await asyncio.to_thread(input, "> ")).strip()
        except EOFError:
            logger.info("EOF received; exiting.")
            break

        if not line:
            continue
        if line.lower() in {"quit", "exit", "q"}:
            logger.info("User requested exit.")
            break

        try:
            logger.info("Processing command: %s", line)
            output = await handle_command(service, projects, line)
            print(f"\n{output}\n")
        except AggregationError as exc:
            logger.error("Report aborted at segment %d (%s): %s", exc.segment_index, exc.failed_segment, exc.snippet)
            print(f"The model reply could not be used ({exc}). Try again or use 'refresh'.\n")
        except (ProviderError, StoreError, ValueError) as exc:
            logger.exception("Error while processing command: %s", exc)
            print(f"An error occurred: {exc}. Please try again.\n")

    logger.info("Session ended. Goodbye!")
    print("Goodbye!")


def main() -> None:
    """Run the command line loop for the research desk."""
    load_dotenv()
    settings = Settings.from_env()
    configure_logging(settings.log_level)

    store = build_store(settings)
    try:
        service = build_service(settings, store)
    except EnvironmentError as exc:
        logger.exception("Failed to initialize the report service: %s", exc)
        sys.exit(1)

    asyncio.run(run_loop(service, ProjectRepository(store)))


if __name__ == "__main__":
    main()
