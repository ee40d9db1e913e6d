"""
The :code:`__main__` module is used as an entrypoint when calling the module from the terminal using python -m flag.
It contains functions providing a comandline interface to the dissector.

Its :code:`main()` function is also exported as an consol-entrypoint.
"""

import logging
from typing import List, Tuple

try:
    import click
except ImportError as e:
    print(e)
    print("Try using 'pip install python-s7dissect[cli]'")
    exit()

from s7dissect import __version__
from s7dissect.dissector import PROTOCOLS, dissect
from s7dissect.error import S7ProtocolError
from s7dissect.render import to_json

logger = logging.getLogger("S7dissect")


def parse_hex(value: str) -> bytes:
    """Parses a hex dump, allowing whitespace and ':' between the bytes."""
    return bytes.fromhex(value.replace(":", " "))


def collect_inputs(telegrams: Tuple[str, ...], files: Tuple[str, ...], hex_files: bool) -> List[Tuple[str, bytes]]:
    inputs = []
    for number, telegram in enumerate(telegrams, start=1):
        try:
            inputs.append((f"argument {number}", parse_hex(telegram)))
        except ValueError:
            raise click.BadParameter(f"{telegram!r} is not a hex string", param_hint="TELEGRAM")
    for path in files:
        with open(path, "rb") as f:
            content = f.read()
        if hex_files:
            try:
                content = parse_hex(content.decode("ascii"))
            except ValueError:
                raise click.BadParameter(f"{path} does not contain a hex dump", param_hint="--file")
        inputs.append((path, content))
    return inputs


@click.command()
@click.argument("telegrams", metavar="TELEGRAM", nargs=-1)
@click.option(
    "-f",
    "--file",
    "files",
    multiple=True,
    type=click.Path(exists=True, file_okay=True, dir_okay=False),
    help="File holding one telegram, may be repeated.",
)
@click.option("--hex-files", is_flag=True, help="Files contain a hex dump instead of binary data.")
@click.option("-p", "--protocol", type=click.Choice(PROTOCOLS), default="auto", show_default=True, help="Protocol to decode.")
@click.option("--indent", default=2, show_default=True, help="JSON indentation, 0 for one line per telegram.")
@click.option("-v", "--verbose", is_flag=True, help="Also print debug-output.")
@click.version_option(__version__)
@click.help_option("-h", "--help")
def main(telegrams, files, hex_files, protocol, indent, verbose):
    """Decode S7comm and S7comm-Plus telegrams given as hex strings or files and print them as JSON."""

    # setup logging
    if verbose:
        logging.basicConfig(format="[%(levelname)s]: %(message)s", level=logging.DEBUG)
    else:
        logging.basicConfig(format="[%(levelname)s]: %(message)s", level=logging.INFO)

    inputs = collect_inputs(telegrams, files, hex_files)
    if not inputs:
        raise click.UsageError("no telegram given")

    rejected = 0
    for name, data in inputs:
        try:
            pdu = dissect(data, protocol)
        except S7ProtocolError as e:
            logger.error(f"{name}: {e}")
            rejected += 1
            continue
        click.echo(to_json(pdu, indent=indent))

    if rejected:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
