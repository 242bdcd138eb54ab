#!/usr/bin/env python3
"""
Hospital Assistant - RAG Query Pipeline
"""

import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Optional

import click
import yaml
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table
from rich.panel import Panel

# Setup logger
logger = logging.getLogger(__name__)

from hospital_rag.models.llm_manager import LLMManager
from hospital_rag.router.query_classifier import QueryClassifier
from hospital_rag.rag.answer_generator import AnswerGenerator
from hospital_rag.rag.models import RAGAnswer
from hospital_rag.rag.orchestrator import RAGOrchestrator
from hospital_rag.rag.retriever import Retriever
from hospital_rag.rag.vector_store import PineconeVectorIndex


STAGE_DESCRIPTIONS = {
    "classifying": "Understanding your question...",
    "searching": "Searching hospital knowledge...",
    "generating": "Generating answer...",
    "warning": "Using fallback answer",
    "complete": "Answer ready",
    "error": "Using fallback answer",
}


def load_env_file():
    """Load environment variables from .env file if it exists."""
    env_file = Path(".env")
    if env_file.exists():
        with open(env_file, 'r') as f:
            for line in f:
                line = line.strip()
                if line and not line.startswith('#') and '=' in line:
                    key, value = line.split('=', 1)
                    os.environ[key] = value


def load_config(config_path: str = "config/config.yaml") -> dict:
    """Load configuration from YAML file."""
    try:
        with open(config_path, 'r') as f:
            config = yaml.safe_load(f)
        return config or {}
    except FileNotFoundError:
        print(f"❌ Configuration file not found: {config_path}")
        sys.exit(1)
    except yaml.YAMLError as e:
        print(f"❌ Error parsing configuration file: {e}")
        sys.exit(1)


def setup_logging(config: dict):
    """Setup logging configuration."""
    log_config = config.get("logging", {})
    log_level = getattr(logging, log_config.get("level", "INFO"))
    log_format = log_config.get("format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    # Create logs directory if it doesn't exist
    log_file = log_config.get("file", "logs/hospital_assistant.log")
    Path(log_file).parent.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=log_level,
        format=log_format,
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler()
        ]
    )


class HospitalAssistant:
    """Main hospital assistant class."""

    def __init__(self, config: dict):
        self.config = config
        self.console = Console()

        rag_config = config.get("rag", {})

        # Initialize components
        self.llm_manager = LLMManager(config)
        self.vector_index = PineconeVectorIndex(rag_config, self.llm_manager)
        self.orchestrator = RAGOrchestrator(
            rag_config,
            QueryClassifier(config.get("classifier", {}), self.llm_manager),
            Retriever(rag_config, self.vector_index),
            AnswerGenerator(config.get("generator", {}), self.llm_manager)
        )

        self.debug_mode = config.get("debug", {}).get("enabled", False)

    async def query(
        self,
        user_query: str,
        namespace: Optional[str] = None,
        top_k: Optional[int] = None
    ) -> RAGAnswer:
        """
        Answer a user query, showing pipeline progress on the console.

        Args:
            user_query: The user's natural language query
            namespace: Optional Pinecone namespace override
            top_k: Optional hits per sub-query

        Returns:
            RAGAnswer from the orchestrator
        """
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=self.console,
            transient=True
        ) as progress:
            task = progress.add_task("Processing...", total=None)

            def on_progress(stage: str, details: dict):
                progress.update(task, description=STAGE_DESCRIPTIONS.get(stage, stage))
                if self.debug_mode:
                    logger.info(f"[{stage}] {details}")

            return await self.orchestrator.answer(
                user_query,
                namespace=namespace,
                top_k=top_k,
                on_progress=on_progress
            )

    def display_result(self, result: RAGAnswer, debug: bool = False):
        """Display query results in a formatted way."""
        content = result.assistant_content

        answer_panel = Panel(
            content.answer,
            title="[bold blue]Answer[/bold blue]",
            border_style="blue"
        )
        self.console.print(answer_panel)

        if content.suggestions:
            self.console.print("[bold]You could also ask:[/bold]")
            for suggestion in content.suggestions:
                self.console.print(f"  • {suggestion}")

        if result.context_used:
            sources_table = Table(title="Sources Used")
            sources_table.add_column("#", style="dim")
            sources_table.add_column("Chunk", style="cyan")
            sources_table.add_column("Page", style="white")
            sources_table.add_column("Match", style="green")

            for i, item in enumerate(result.context_used, start=1):
                sources_table.add_row(
                    str(i),
                    item.id,
                    "-" if item.page is None else str(item.page),
                    f"{item.score * 100:.1f}%"
                )

            self.console.print(sources_table)
        else:
            self.console.print("[dim]No knowledge-base sources were used.[/dim]")

        if debug:
            debug_table = Table(title="Debug Information")
            debug_table.add_column("Property", style="cyan")
            debug_table.add_column("Value", style="white")

            debug_table.add_row("Intent", str(result.intent))
            debug_table.add_row("Used RAG", "Yes" if result.used_rag else "No")
            debug_table.add_row("Degraded", "Yes" if content.degraded else "No")

            self.console.print(debug_table)

    def show_stats(self):
        """Display vector index statistics."""
        stats = self.vector_index.get_stats()

        rag_table = Table(title="Knowledge Base Index Statistics")
        rag_table.add_column("Metric", style="cyan")
        rag_table.add_column("Value", style="white")

        if "error" not in stats:
            rag_table.add_row("Index Name", stats.get("index_name", "Unknown"))
            rag_table.add_row("Namespace", stats.get("namespace", "Unknown"))
            rag_table.add_row("Embedding Mode", stats.get("embedding_mode", "Unknown"))
            rag_table.add_row("Total Vectors", str(stats.get("total_vector_count", 0)))
            rag_table.add_row("Namespace Vectors", str(stats.get("namespace_vector_count", 0)))
            rag_table.add_row("Dimension", str(stats.get("dimension", 0)))
        else:
            rag_table.add_row("Status", f"Error: {stats['error']}")

        provider_table = Table(title="LLM Providers")
        provider_table.add_column("Provider", style="cyan")
        for provider in self.llm_manager.get_available_providers():
            provider_table.add_row(provider)

        self.console.print(rag_table)
        self.console.print(provider_table)

    async def interactive_mode(self):
        """Run the assistant in interactive mode."""
        self.console.print(Panel(
            "[bold blue]Hospital Information Assistant[/bold blue]\n"
            "Ask questions about timings, departments, doctors and services!\n"
            "Type 'quit' to exit, 'stats' for index statistics, 'help' for commands.",
            border_style="blue"
        ))

        while True:
            try:
                query = click.prompt("\nQuery")

                if query.lower() in ['quit', 'exit', 'q']:
                    break
                elif query.lower() == 'stats':
                    self.show_stats()
                    continue
                elif query.lower() == 'help':
                    self.console.print("""
                    [bold]Available Commands:[/bold]
                    • Ask any question about the hospital
                    • 'stats' - Show index statistics
                    • 'help' - Show this help message
                    • 'quit' - Exit the assistant
                    """)
                    continue
                elif not query.strip():
                    continue

                result = await self.query(query)
                self.display_result(result, debug=self.debug_mode)

            except (KeyboardInterrupt, click.Abort):
                self.console.print("\n[yellow]Exiting...[/yellow]")
                break


@click.group()
@click.option('--config', '-c', default='config/config.yaml', help='Configuration file path')
@click.option('--debug', '-d', is_flag=True, help='Enable debug mode')
@click.pass_context
def cli(ctx, config, debug):
    """Hospital Assistant CLI."""
    # Load environment variables first
    load_env_file()

    ctx.ensure_object(dict)
    ctx.obj['config'] = load_config(config)
    ctx.obj['debug'] = debug

    # Setup logging
    setup_logging(ctx.obj['config'])

    # Enable debug mode in config
    if debug:
        ctx.obj['config'].setdefault('debug', {})['enabled'] = True


@cli.command()
@click.argument('question')
@click.option('--namespace', '-n', help='Pinecone namespace to search')
@click.option('--top-k', '-k', type=click.IntRange(min=1), help='Hits requested per sub-query')
@click.option('--plain', is_flag=True, help='Print a single plain-text reply, as sent to chat channels')
@click.pass_context
def query(ctx, question, namespace, top_k, plain):
    """Ask the hospital assistant a question."""
    if not question.strip():
        raise click.BadParameter("Question must not be empty", param_hint="QUESTION")

    system = HospitalAssistant(ctx.obj['config'])

    async def run_query():
        if plain:
            click.echo(await system.orchestrator.answer_text(question, namespace=namespace, top_k=top_k))
            return
        result = await system.query(question, namespace=namespace, top_k=top_k)
        system.display_result(result, debug=ctx.obj['debug'])

    asyncio.run(run_query())


@cli.command()
@click.pass_context
def stats(ctx):
    """Show knowledge base index statistics."""
    system = HospitalAssistant(ctx.obj['config'])
    system.show_stats()


@cli.command()
@click.pass_context
def interactive(ctx):
    """Start interactive query mode."""
    system = HospitalAssistant(ctx.obj['config'])
    asyncio.run(system.interactive_mode())


if __name__ == "__main__":
    cli()
