"""Command-line utility for the IR LED strip service.

The tool starts the HTTP service, prints the command code table and the
per-category documentation, and can transmit a single command straight to the
IR sink without going through HTTP.
"""
from __future__ import annotations

import logging
import sys
from typing import Optional

import typer  # type: ignore

from .commands import Category, code_table, lookup
from .config import ServiceSettings, load_settings
from .documentation import describe_service, documentation_for
from .ir_link import SinkError, create_sink
from .server import run as run_server
from .services.connectivity import ConnectivityError

app = typer.Typer(add_completion=False, help="IR controlled LED strip web service")


def _apply_overrides(
    settings: ServiceSettings,
    *,
    sink: Optional[str] = None,
    serial_port: Optional[str] = None,
    baudrate: Optional[int] = None,
    ws_endpoint: Optional[str] = None,
) -> ServiceSettings:
    updates = {
        "sink": sink.strip().lower() if sink else None,
        "serial_port": serial_port,
        "serial_baudrate": baudrate,
        "ws_endpoint": ws_endpoint,
    }
    return settings.model_copy(update={key: value for key, value in updates.items() if value is not None})


def _parse_category(value: str) -> Category:
    try:
        return Category(value.strip().lower())
    except ValueError:
        choices = ", ".join(category.value for category in Category)
        raise typer.BadParameter(f"expected one of: {choices}") from None


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, help="Interface to bind (IRLED_HTTP_HOST)."),
    port: Optional[int] = typer.Option(None, help="HTTP port (IRLED_HTTP_PORT, default 80)."),
    sink: Optional[str] = typer.Option(None, help="IR sink: serial, ws or log."),
    serial_port: Optional[str] = typer.Option(None, help="Serial port of the IR transmitter."),
    baudrate: Optional[int] = typer.Option(None, help="Serial baud rate."),
    ws_endpoint: Optional[str] = typer.Option(None, help="WebSocket endpoint when sink=ws."),
    connectivity: Optional[str] = typer.Option(None, help="Link backend: static or nmcli."),
    log_level: str = typer.Option("INFO", help="Logging level."),
) -> None:
    """Run the HTTP service until interrupted."""

    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    settings = _apply_overrides(
        load_settings(),
        sink=sink,
        serial_port=serial_port,
        baudrate=baudrate,
        ws_endpoint=ws_endpoint,
    )
    updates = {"http_host": host, "http_port": port, "connectivity": connectivity}
    settings = settings.model_copy(update={key: value for key, value in updates.items() if value is not None})

    try:
        run_server(settings)
    except (SinkError, ConnectivityError) as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(code=2) from exc


@app.command()
def codes() -> None:
    """Print every known IR command code."""

    for code, name in code_table():
        typer.echo(f"0x{code:02X}  {code:3d}  {name}")


@app.command()
def docs(
    category: Optional[str] = typer.Argument(
        None, help="Category (raw, brightness, power, function, color); omit for the route list."
    ),
) -> None:
    """Print the documentation served for a category."""

    if category is None:
        typer.echo(describe_service(), nl=False)
        return
    typer.echo(documentation_for(_parse_category(category)), nl=False)


@app.command()
def send(
    category: str = typer.Argument(..., help="Category (raw, brightness, power, function, color)."),
    value: str = typer.Argument(..., help="Token such as 'on' or 'red', or a byte for raw."),
    sink: Optional[str] = typer.Option(None, help="IR sink: serial, ws or log."),
    serial_port: Optional[str] = typer.Option(None, help="Serial port of the IR transmitter."),
    baudrate: Optional[int] = typer.Option(None, help="Serial baud rate."),
    ws_endpoint: Optional[str] = typer.Option(None, help="WebSocket endpoint when sink=ws."),
) -> None:
    """Transmit one command directly to the IR sink."""

    resolved = _parse_category(category)
    code = lookup(resolved, value)
    if code is None:
        typer.secho(f"'{value}' is not a valid {resolved.value} value", fg=typer.colors.RED)
        raise typer.Exit(code=2)

    settings = _apply_overrides(
        load_settings(),
        sink=sink,
        serial_port=serial_port,
        baudrate=baudrate,
        ws_endpoint=ws_endpoint,
    )
    try:
        ir_sink = create_sink(
            settings.sink,
            serial_port=settings.serial_port,
            baudrate=settings.serial_baudrate,
            ws_endpoint=settings.ws_endpoint,
        )
        try:
            ir_sink.send(code)
        finally:
            ir_sink.close()
    except SinkError as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(code=2) from exc

    typer.echo(f"sent 0x{code:02X} ({resolved.value} {value})")


def main(argv: Optional[list[str]] = None) -> int:
    args = argv if argv is not None else sys.argv[1:]
    try:
        result = app(prog_name="irled", args=args, standalone_mode=False)
    except typer.Exit as exc:
        return exc.exit_code
    except typer.BadParameter as exc:
        exc.show()
        return exc.exit_code
    except SinkError as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        return 2
    except Exception as exc:  # pragma: no cover - safety net
        typer.secho(f"Unexpected error: {exc}", fg=typer.colors.RED)
        return 1
    # Without standalone mode click returns the exit code instead of raising.
    return result if isinstance(result, int) else 0


if __name__ == "__main__":  # pragma: no cover - manual execution
    sys.exit(main(sys.argv[1:]))


def run() -> None:
    """Entry point for console_scripts."""

    sys.exit(main(sys.argv[1:]))
