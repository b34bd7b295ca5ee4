# /databank/app.py
"""
Terminal client for the Databank question-answering service.
Handles the interactive menu and renders answers and quota telemetry with rich.
"""
import sys

from rich.markdown import Markdown
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table, box

from .config import API_HOST, API_MODEL_NAME, API_PORT, CORPUS_DIR, LOCAL_MODEL_NAME, USE_API_LLM, console
from .errors import ConfigurationError, DatabankError, QuotaExceededError, ValidationError
from .observability import get_logger
from .service import QUOTA_EXHAUSTED_MESSAGE, QuestionAnsweringService

logger = get_logger(__name__)


# --- UI & Formatting Functions ---

def display_welcome_banner():
    """Displays the application's welcome banner."""
    model_label = f"API: {API_MODEL_NAME}" if USE_API_LLM else f"Local: {LOCAL_MODEL_NAME}"
    console.print(Panel(
        "[bold magenta]Databank AI - Topic Q&A[/bold magenta]",
        subtitle=f"[cyan]{model_label}[/cyan]",
        expand=False
    ))
    console.print(f"[green]Topic directory: {CORPUS_DIR}[/green]")


def render_quota(service: QuestionAnsweringService):
    status = service.status()
    colour = "green" if status.remaining > 0 else "red"
    console.print(f"[{colour}]Remaining today: {status.remaining}/{status.limit} (used {status.used})[/{colour}]")


def list_topics(service: QuestionAnsweringService):
    """Prints the registered topics as a table."""
    topics = service.catalog.list_topics()
    if not topics:
        console.print("[yellow]No topic documents are registered.[/yellow]")
        return
    table = Table(title="Registered Topics", box=box.ROUNDED)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Topic", style="cyan")
    table.add_column("Source", style="magenta")
    for idx, topic in enumerate(topics, start=1):
        table.add_row(str(idx), topic.identifier, topic.source_ref)
    console.print(table)


def handle_question(service: QuestionAnsweringService, query: str) -> bool:
    """Answers one question; returns False when the daily quota is exhausted."""
    try:
        with console.status("[bold cyan]Thinking...[/bold cyan]", spinner="dots"):
            result = service.ask(query)
    except QuotaExceededError:
        console.print(f"[bold red]{QUOTA_EXHAUSTED_MESSAGE}[/bold red]")
        return False
    except ValidationError as exc:
        console.print(f"[yellow]{exc}[/yellow]")
        return True
    except ConfigurationError as exc:
        console.print(f"[bold red]Configuration error:[/bold red] {exc}")
        return False
    except DatabankError as exc:
        logger.error("cli_question_failed", error=str(exc))
        console.print(f"[bold red]Error:[/bold red] {exc}")
        return True

    console.print(Panel(Markdown(result.reply), title="Answer", border_style="green"))
    sources = ", ".join(result.topics) if result.topics else "none"
    console.print(f"[dim]Topics: {sources} ({result.strategy})[/dim]")
    console.print(f"[dim]Remaining today: {result.remaining}/{result.limit}[/dim]")
    return True


def handle_qa_session(service: QuestionAnsweringService):
    console.print("\n[bold green]Q&A Session Started.[/bold green] [italic]Type 'back' to return to menu.[/italic]")
    while True:
        query = Prompt.ask("[bold cyan]Ask a question (or type 'back' to go back to the menu)[/bold cyan]")
        if query.lower() == 'back':
            break
        if query.strip() and not handle_question(service, query):
            break


def main():
    """Main application loop."""
    display_welcome_banner()
    service = QuestionAnsweringService()

    while True:
        try:
            console.print("\n[bold]Main Menu:[/bold]")
            console.print("[green]1. Ask Questions[/green]")
            console.print("[cyan]2. List Topics[/cyan]")
            console.print("[blue]3. Show Remaining Quota[/blue]")
            console.print("[red]4. Exit[/red]")

            choice = Prompt.ask("Choose an option", choices=["1", "2", "3", "4"])

            if choice == "1":
                handle_qa_session(service)
            elif choice == "2":
                list_topics(service)
            elif choice == "3":
                render_quota(service)
            elif choice == "4":
                break
        except KeyboardInterrupt:
            break

    console.print("\n[bold magenta]Goodbye![/bold magenta]")
    sys.exit(0)


def serve():
    """Runs the HTTP API with uvicorn."""
    import uvicorn

    uvicorn.run("databank.api_server:app", host=API_HOST, port=API_PORT)


if __name__ == "__main__":
    main()
