from __future__ import annotations

import logging
from typing import Protocol

import click

log = logging.getLogger(__name__)


class Notifier(Protocol):
    def info(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...


class LogNotifier:
    def info(self, message: str) -> None:
        log.info(message)

    def error(self, message: str) -> None:
        log.error(message)


class EchoNotifier:
    """Prints notices for interactive commands; errors go to stderr."""

    def info(self, message: str) -> None:
        click.echo(message)

    def error(self, message: str) -> None:
        click.secho(message, fg="red", err=True)
