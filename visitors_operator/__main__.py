#!/usr/bin/env python
"""
Command line entrypoint for the visitors operator
"""

# Standard
from typing import Any, Dict, Iterator, List, Tuple
import argparse
import sys

# First Party
import alog

# Local
from .cmd import CmdBase, ReconcileCmd
from .config import library_config
from .log_format import VisitorsJsonFormatter

log = alog.use_channel("MAIN")

# Maps an argparse dest to the path of the library config key it overrides
ConfigSetters = Dict[str, List[str]]

## Library config args #########################################################


def _config_leaves(config_obj: dict, path: List[str]) -> Iterator[Tuple[List[str], Any]]:
    for key, val in config_obj.items():
        if isinstance(val, dict):
            yield from _config_leaves(val, path + [key])
        else:
            yield path + [key], val


def add_library_config_args(parser) -> ConfigSetters:
    """Add a --<dotted.key> override arg for every leaf of the library config.
    The current value is the default, so unset args leave the config as is.
    """
    setters = {}
    for key_path, val in _config_leaves(library_config, []):
        dest_name = "_".join(key_path)
        kwargs = {
            "dest": dest_name,
            "default": val,
            "help": f"Override of the library config value [{val}]",
        }
        if isinstance(val, bool):
            kwargs["action"] = "store_true"
        elif val is not None:
            kwargs["type"] = type(val)
        parser.add_argument("--" + ".".join(key_path), **kwargs)
        setters[dest_name] = key_path
    return setters


def update_library_config(args: argparse.Namespace, setters: ConfigSetters):
    """Write the parsed override values back into the library config"""
    for dest_name, key_path in setters.items():
        *parents, leaf = key_path
        section = library_config
        for part in parents:
            section = section[part]
        section[leaf] = getattr(args, dest_name)


def add_command(
    subparsers: argparse._SubParsersAction,
    cmd: CmdBase,
) -> Tuple[argparse.ArgumentParser, ConfigSetters]:
    """Register a command with the library config args in their own group"""
    parser = cmd.add_subparser(subparsers)
    parser.set_defaults(func=cmd.cmd)
    setters = add_library_config_args(
        parser.add_argument_group("Library Configuration")
    )
    return parser, setters


## Main ########################################################################


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    subparsers = parser.add_subparsers(help="Available commands", dest="command")
    subparsers.required = True
    _, setters = add_command(subparsers, ReconcileCmd())
    args = parser.parse_args(argv)
    update_library_config(args, setters)

    # Logging was set up from the file config at import, so redo it with any
    # overrides applied
    alog.configure(
        default_level=library_config.log_level,
        filters=library_config.log_filters,
        formatter=VisitorsJsonFormatter() if library_config.log_json else "pretty",
        thread_id=library_config.log_thread_id,
    )
    log.debug("Running command [%s]", args.command)
    return args.func(args)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
