"""
Interface shared by the subcommands of the entrypoint
"""

# Standard
import abc
import argparse


class CmdBase(abc.ABC):
    """A subcommand registers its own parser and runs with the parsed args"""

    @abc.abstractmethod
    def add_subparser(
        self,
        subparsers: argparse._SubParsersAction,
    ) -> argparse.ArgumentParser:
        """Register the subcommand's parser and return it so library config
        args can be added alongside
        """

    @abc.abstractmethod
    def cmd(self, args: argparse.Namespace) -> int:
        """Run the subcommand and return the process exit code"""
