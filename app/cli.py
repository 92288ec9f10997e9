from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

import typer
import uvicorn
from rich.console import Console
from rich.table import Table

from app.config import load_settings
from app.flow_wiring import configure_logging, open_document
from domain.errors import ContainerNotFound, CycleError, DuplicateContainerError
from domain.models import FlowResult, FrameGeometry, TextContainer, TextStyle
from domain.services.text_flow_document import TextFlowDocument

app = typer.Typer(no_args_is_help=True)
console = Console()

ConfigOption = typer.Option(None, "--config", help="YAML settings file.")


def _open(config: Optional[Path]) -> TextFlowDocument:
    settings = load_settings(config)
    configure_logging(settings)
    return open_document(settings)


def _preview(text: str | None, limit: int = 40) -> str:
    if not text:
        return ""
    flat = text.replace("\n", "\\n")
    return flat if len(flat) <= limit else f"{flat[: limit - 1]}…"


def _containers_table(title: str, containers: list[TextContainer]) -> Table:
    table = Table(title=title)
    table.add_column("id")
    table.add_column("page")
    table.add_column("from")
    table.add_column("to")
    table.add_column("visible")
    table.add_column("overflow", style="red")
    for container in containers:
        table.add_row(
            container.id,
            container.page_id,
            container.linked_from_object_id or "",
            container.linked_object_id or "",
            _preview(container.visible_content),
            _preview(container.overflow_content),
        )
    return table


def _report_results(results: list[FlowResult]) -> None:
    for result in results:
        if result.terminal_overflow:
            console.print(
                f"[red]Overflow[/] at {result.tail_id}: "
                f"{len(result.terminal_overflow)} characters do not fit"
            )
        for container_id in result.updated_ids:
            console.print(f"[green]Updated[/] {container_id}")


@app.command("pages")
def list_pages(config: Optional[Path] = ConfigOption) -> None:
    document = _open(config)
    page_ids = document.registry.page_ids()
    if not page_ids:
        console.print("[yellow]No pages with text containers[/]")
        raise typer.Exit(code=0)
    for page_id in page_ids:
        console.print(f"{page_id} ({len(document.registry.page_containers(page_id))} containers)")


@app.command("show")
def show_page(
    page_id: str = typer.Argument(..., help="Page to list."),
    config: Optional[Path] = ConfigOption,
) -> None:
    document = _open(config)
    containers = document.registry.page_containers(page_id)
    if not containers:
        console.print(f"[yellow]No text containers on page {page_id}[/]")
        raise typer.Exit(code=0)
    console.print(_containers_table(f"Page {page_id}", containers))


@app.command("chain")
def show_chain(
    container_id: str = typer.Argument(..., help="Any container of the chain."),
    config: Optional[Path] = ConfigOption,
) -> None:
    document = _open(config)
    try:
        chain = document.chain(container_id)
    except ContainerNotFound as exc:
        console.print(f"[red]{exc}[/]")
        raise typer.Exit(code=1) from exc
    console.print(_containers_table(f"Chain of {container_id}", chain))


@app.command("add")
def add_container(
    page_id: str = typer.Argument(..., help="Page that owns the new frame."),
    width: float = typer.Option(..., help="Frame width."),
    height: float = typer.Option(..., help="Frame height."),
    padding: float = typer.Option(0.0, help="Inner padding on every side."),
    columns: int = typer.Option(1, help="Number of columns."),
    column_gap: float = typer.Option(0.0, help="Gap between columns."),
    font_family: str = typer.Option("Arial", help="Font family."),
    font_size: float = typer.Option(16.0, help="Font size."),
    line_height: float = typer.Option(1.16, help="Line height multiplier."),
    text: str = typer.Option("", help="Initial content."),
    container_id: Optional[str] = typer.Option(None, "--id", help="Explicit container id."),
    config: Optional[Path] = ConfigOption,
) -> None:
    document = _open(config)
    geometry = FrameGeometry(
        width=width, height=height, padding=padding, columns=columns, column_gap=column_gap
    )
    style = TextStyle(font_family=font_family, font_size=font_size, line_height=line_height)
    try:
        result = document.add_container(
            page_id, geometry, style=style, content=text, container_id=container_id
        )
    except DuplicateContainerError as exc:
        console.print(f"[red]Cannot add:[/] {exc}")
        raise typer.Exit(code=1) from exc
    console.print(f"[green]Added[/] {result.touched_ids[0]}")
    _report_results(result.results)


@app.command("set-text")
def set_text(
    container_id: str = typer.Argument(..., help="Container that was edited."),
    text: str = typer.Argument(..., help="New content of the container."),
    config: Optional[Path] = ConfigOption,
) -> None:
    document = _open(config)
    if container_id not in document.registry:
        console.print(f"[red]Text container not found:[/] {container_id}")
        raise typer.Exit(code=1)
    report = document.edit_content(container_id, text)
    _report_results(report.results)


@app.command("link")
def link(
    source_id: str = typer.Argument(..., help="Container whose overflow continues."),
    target_id: str = typer.Argument(..., help="Container that receives the overflow."),
    config: Optional[Path] = ConfigOption,
) -> None:
    document = _open(config)
    try:
        result = document.link(source_id, target_id)
    except (ContainerNotFound, CycleError) as exc:
        console.print(f"[red]Cannot link:[/] {exc}")
        raise typer.Exit(code=1) from exc
    console.print(f"[green]Linked[/] {source_id} -> {target_id}")
    _report_results(result.results)


@app.command("unlink")
def unlink(
    source_id: str = typer.Argument(..., help="Container whose outgoing link is removed."),
    config: Optional[Path] = ConfigOption,
) -> None:
    document = _open(config)
    try:
        result = document.unlink(source_id)
    except ContainerNotFound as exc:
        console.print(f"[red]Cannot unlink:[/] {exc}")
        raise typer.Exit(code=1) from exc
    if not result.results:
        console.print(f"[yellow]{source_id} has no outgoing link[/]")
        raise typer.Exit(code=0)
    console.print(f"[green]Unlinked[/] {source_id}")
    _report_results(result.results)


@app.command("delete")
def delete(
    container_id: str = typer.Argument(..., help="Container to delete."),
    config: Optional[Path] = ConfigOption,
) -> None:
    document = _open(config)
    try:
        result = document.delete_container(container_id)
    except ContainerNotFound as exc:
        console.print(f"[red]Cannot delete:[/] {exc}")
        raise typer.Exit(code=1) from exc
    console.print(f"[green]Deleted[/] {container_id}")
    _report_results(result.results)


@app.command("check")
def check(
    reflow: bool = typer.Option(False, help="Re-flow every chain before reporting."),
    config: Optional[Path] = ConfigOption,
) -> None:
    document = _open(config)
    for issue in document.load_issues:
        console.print(f"[yellow]Healed link[/] {issue.describe()}")
    if reflow:
        _report_results(document.reflow_all())
    overflowing = document.overflowing()
    if not overflowing:
        console.print("[green]All text fits[/]")
        return
    for container in overflowing:
        console.print(
            f"[red]Overflow[/] at {container.id}: "
            f"{len(container.overflow_content or '')} characters do not fit"
        )
    raise typer.Exit(code=1)


@app.command("serve")
def serve(
    host: str = typer.Option("127.0.0.1", help="Interface to bind."),
    port: int = typer.Option(8000, help="Port to listen on."),
    config: Optional[Path] = ConfigOption,
) -> None:
    if config is not None:
        os.environ["TEXTFLOW_CONFIG_PATH"] = str(config)
    settings = load_settings(config)
    configure_logging(settings)
    uvicorn.run("app.web_main:app", host=host, port=port, log_level=settings.flow.log_level.lower())


if __name__ == "__main__":
    app()
