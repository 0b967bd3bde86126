"""drivesync CLI - mirror folders into a search index.

Uses tyro for type-driven CLI generation from dataclasses.
"""

from __future__ import annotations

from typing import Annotated

import tyro

from drivesync.cli.commands.fingerprint import Fingerprint
from drivesync.cli.commands.query import Query
from drivesync.cli.commands.watch import Watch

# Type aliases for subcommand annotations
_Watch = Annotated[Watch, tyro.conf.subcommand("watch")]
_Query = Annotated[Query, tyro.conf.subcommand("query")]
_Fingerprint = Annotated[Fingerprint, tyro.conf.subcommand("fingerprint")]

Command = _Watch | _Query | _Fingerprint


def main() -> int:
    """Entry point for the CLI."""
    # configure structlog (respects DRIVESYNC_DEBUG env var)
    from drivesync.logging_config import configure_logging

    configure_logging()

    try:
        cmd = tyro.cli(
            Command,
            prog="drivesync",
            description="Keep per-client search indexes in sync with folders.",
        )
        return cmd.run()
    except SystemExit as e:
        return e.code if isinstance(e.code, int) else 1
    except KeyboardInterrupt:
        return 130
    except Exception as e:
        from drivesync import console

        console.error(str(e))
        return 1
