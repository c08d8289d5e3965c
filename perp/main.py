"""perp CLI entry point."""

import sys
from typing import NoReturn

import click
from rich.console import Console

from . import __version__
from .config import Config
from .exceptions import APIStatusError, ConfigurationError, TransportError
from .llm.decoder import StreamDecoder, render_citations
from .llm.perplexity_client import PerplexityClient
from .llm.request import build_payload
from .logging import init_logger

err_console = Console(stderr=True)

USAGE = 'Usage: perp "<query>" --model <model name>'


def _fail(message: str, code: int = 1) -> NoReturn:
    err_console.print(f"Error: {message}", style="red", markup=False, highlight=False, soft_wrap=True)
    sys.exit(code)


def _write(text: str) -> None:
    click.echo(text, nl=False)


@click.command()
@click.argument("query", nargs=-1)
@click.option("--model", "-m", default="", help="Model name to use (defaults to sonar)")
@click.option("--citations/--no-citations", default=None, help="Show or hide the citation list")
@click.option("--temperature", "-t", type=click.FloatRange(0, 2), default=None, help="Sampling temperature")
@click.option("--top-p", type=click.FloatRange(0, 1, min_open=True), default=None, help="Nucleus sampling threshold")
@click.option("--max-tokens", type=click.IntRange(min=1), default=None, help="Maximum tokens in the answer")
@click.option("--endpoint", "-e", default="", help="API base URL")
@click.option("--debug", "-d", is_flag=True, help="Log raw stream lines to the session log")
@click.version_option(version=__version__)
def main(query, model, citations, temperature, top_p, max_tokens, endpoint, debug):
    """Ask QUERY and stream the answer with its citations."""
    query = " ".join(query).strip()
    if not query:
        err_console.print(USAGE, markup=False, highlight=False, soft_wrap=True)
        sys.exit(1)

    try:
        config = Config.load()
    except ConfigurationError as e:
        _fail(str(e))

    if model:
        config.model = model
    if endpoint:
        config.base_url = endpoint
    if temperature is not None:
        config.temperature = temperature
    if top_p is not None:
        config.top_p = top_p
    if max_tokens is not None:
        config.max_tokens = max_tokens
    if citations is not None:
        config.show_citations = citations
    if debug:
        config.debug = True

    errors = config.validate()
    if errors:
        for error in errors:
            err_console.print(f"Error: {error}", style="red", markup=False, highlight=False, soft_wrap=True)
        sys.exit(1)

    logger = init_logger(config.model, debug=config.debug)

    payload = build_payload(
        config.model,
        query,
        max_tokens=config.max_tokens,
        temperature=config.temperature,
        top_p=config.top_p,
    )
    try:
        payload.to_json()
    except ConfigurationError as e:
        logger.log_error(str(e))
        _fail(str(e))
    logger.log_request(payload.to_dict())

    def report(message: str) -> None:
        logger.log_diagnostic(message)
        err_console.print(message, style="yellow", markup=False, highlight=False, soft_wrap=True)

    decoder = StreamDecoder(on_error=report, on_line=logger.log_stream_event)

    try:
        with PerplexityClient(config) as client:
            with client.stream_lines(payload) as lines:
                decoder.consume(lines, write=_write)
    except APIStatusError as e:
        logger.log_error(str(e))
        err_console.print(f"Error: received status {e.status_code}", style="red", markup=False, highlight=False, soft_wrap=True)
        err_console.print(e.body, markup=False, highlight=False, soft_wrap=True)
        sys.exit(1)
    except TransportError as e:
        logger.log_error(str(e))
        err_console.print(str(e), style="red", markup=False, highlight=False, soft_wrap=True)
        sys.exit(1)
    except KeyboardInterrupt:
        logger.log_model_response(decoder.text)
        err_console.print("\nInterrupted", style="dim")
        sys.exit(130)

    logger.log_model_response(decoder.text)

    captured = decoder.citations
    if captured:
        logger.log_citations(captured)
    if captured and config.show_citations:
        _write(render_citations(captured))
    elif decoder.text and not decoder.text.endswith("\n"):
        _write("\n")

    if decoder.read_error is not None:
        logger.log_error(str(decoder.read_error))
        sys.exit(1)


if __name__ == "__main__":
    main()
