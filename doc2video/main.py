"""
Entrada principal doc2video.
Convierte documentos en escenas de video con footage de stock asignado.
"""
import argparse
import logging
import sys

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .config import load_settings
from .errors import InputError
from .jobs.scheduler import JobPriority
from .orchestrator import ConversionResult, DocumentVideoOrchestrator

console = Console()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="doc2video",
        description="Convierte documentos en escenas de video con footage de stock",
    )
    parser.add_argument("inputs", nargs="+", metavar="FILE", help="Documentos a convertir (.txt, .md, .pdf, .docx, .pptx, .xlsx)")
    parser.add_argument("--text", action="store_true", help="Tratar FILE como texto literal")
    parser.add_argument("--workers", type=int, help="Jobs de assets simultáneos")
    parser.add_argument(
        "--priority",
        choices=[p.value for p in JobPriority],
        default=JobPriority.NORMAL.value,
        help="Prioridad de los jobs de assets",
    )
    parser.add_argument("--output", type=str, help="Directorio para los logs de procesamiento")
    parser.add_argument("--no-llm", action="store_true", help="Usar solo la planificación heurística")
    parser.add_argument("--config", type=str, help="Ruta alternativa a config.yaml")
    parser.add_argument("-v", "--verbose", action="store_true", help="Logging detallado")
    return parser


def print_result(result: ConversionResult) -> None:
    title = result.document or "texto"
    console.print(Panel(
        f"[bold cyan]{title}[/bold cyan]\n"
        f"{result.plan.word_count} palabras → {result.plan.scene_count} escenas "
        f"({result.plan.strategy}), {result.total_duration}s",
    ))

    table = Table(title="Escenas")
    table.add_column("#", justify="right")
    table.add_column("Título", style="cyan")
    table.add_column("Mood")
    table.add_column("Dur.", justify="right")
    table.add_column("Query")
    table.add_column("Asset")

    for assignment in result.assignments:
        scene, asset = assignment.scene, assignment.asset
        if asset.success:
            origin = f"[green]{asset.source.value}[/green]"
        else:
            origin = f"[yellow]{asset.source.value}[/yellow]"
        table.add_row(
            str(scene.id),
            scene.title,
            scene.mood.value,
            f"{scene.duration_seconds}s",
            assignment.bundle.primary_query,
            origin,
        )
    console.print(table)

    stats = result.scheduler_stats
    console.print(
        f"[dim]Jobs: {stats.get('completed', 0)} completados, {stats.get('failed', 0)} fallidos, "
        f"{stats.get('cancelled', 0)} cancelados · {result.timings.get('total', 0):.2f}s[/dim]"
    )


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    settings = load_settings(args.config, max_workers=args.workers, output_dir=args.output)
    orchestrator = DocumentVideoOrchestrator(settings, use_llm=not args.no_llm)

    console.print("🎬 [bold]doc2video[/bold] - Documento → Escenas")
    exit_code = 0
    try:
        if args.text:
            console.print(Panel("[bold cyan]Procesando texto[/bold cyan]"))
            try:
                result = orchestrator.produce(" ".join(args.inputs), args.priority)
            except InputError as e:
                console.print(f"[red]✗ {e}[/red]")
                return 1
            print_result(result)
            path = orchestrator.save_result(result)
            console.print(f"[green]✓ Log guardado en {path}[/green]")
        else:
            for outcome in orchestrator.produce_batch(args.inputs, args.priority):
                if outcome.result is None:
                    console.print(f"[red]✗ {outcome.path}: {outcome.error}[/red]")
                    exit_code = 1
                    continue
                print_result(outcome.result)
                path = orchestrator.save_result(outcome.result)
                console.print(f"[green]✓ Log guardado en {path}[/green]\n")
    finally:
        orchestrator.close()

    return exit_code


if __name__ == "__main__":
    sys.exit(main())
