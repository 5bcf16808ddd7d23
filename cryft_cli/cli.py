#!/usr/bin/env python3
import asyncio
import importlib
import importlib.metadata
import logging
import os.path
import sys
import traceback
from pathlib import Path
from typing import Coroutine, Optional

import typer
from git import Repo, GitError
from rich import box
from rich.prompt import Confirm, Prompt
from rich.table import Column, Table
from rich.tree import Tree
from typing_extensions import Annotated
from yaml import safe_dump, safe_load

from cryft_cli.src import defaults, HELP_PANELS, COLORS
from cryft_cli.src.commands.subnets import create as subnet_create
from cryft_cli.src.commands.subnets import validators as subnet_validators
from cryft_cli.src.cryft.app_store import AppStore
from cryft_cli.src.cryft.errors import CryftCLIError
from cryft_cli.src.cryft.json_utils import json_error
from cryft_cli.src.cryft.models import AddValidatorRequest, Network
from cryft_cli.src.cryft.utils import (
    console,
    err_console,
    verbose_console,
    json_console,
    print_error,
    duration_callback,
)
from cryft_cli.version import __version__

logger = logging.getLogger("cryft_cli")
_epilog = "Run [bold]cryft-cli --commands[/bold] to see every available command"


def arg__(arg_name: str) -> str:
    """
    Helper function to 'arg' format a string for rich console
    """
    return f"[{COLORS.G.ARG}]{arg_name}[/{COLORS.G.ARG}]"


def validate_network(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    try:
        return str(Network.from_string(value))
    except ValueError:
        raise typer.BadParameter(
            f"Unknown network {value!r}. Choose one of: {', '.join(str(n) for n in Network)}"
        )


class Options:
    """
    Re-usable typer args
    """

    key_name = typer.Option(
        None,
        "--key",
        "-k",
        "--key-name",
        help="Name of the key used to issue the transaction.",
    )
    network = typer.Option(
        None,
        "--network",
        help="The network to use (Fuji or Mainnet). Leave empty to be prompted.",
        show_default=False,
        callback=validate_network,
    )
    node_id = typer.Option(
        None,
        "--nodeID",
        "--node-id",
        "--node_id",
        help="The NodeID of the validator to add, e.g. `NodeID-7Xhw2mDxuDS44j42TCB6U5579esbSt3Lg`.",
    )
    weight = typer.Option(
        None,
        "--weight",
        help="The staking weight of the validator to add.",
        show_default=False,
    )
    start_time = typer.Option(
        None,
        "--start-time",
        "--start_time",
        help="UTC start time when this validator starts validating, in 'YYYY-MM-DD HH:MM:SS' format.",
    )
    staking_period = typer.Option(
        None,
        "--staking-period",
        "--staking_period",
        help="How long this validator will be staking, e.g. `8760h` or `720h30m`.",
        callback=duration_callback,
    )
    genesis_file = typer.Option(
        None, "--genesis", help="File path of the genesis to use."
    )
    vm_file = typer.Option(None, "--vm", help="File path of the custom VM to use.")
    use_evm = typer.Option(
        False, "--evm", help="Use the Subnet-EVM as the base template."
    )
    use_custom = typer.Option(False, "--custom", help="Use a custom VM template.")
    force = typer.Option(
        False,
        "--force",
        "-f",
        help="Overwrite the existing configuration if one exists.",
    )
    verbose = typer.Option(
        False,
        "--verbose",
        help="Enable verbose output.",
    )
    quiet = typer.Option(
        False,
        "--quiet",
        help="Display only critical information on the console.",
    )
    json_output = typer.Option(
        False,
        "--json-output",
        "--json-out",
        help="Outputs the result of the command as JSON.",
    )


def verbosity_console_handler(verbosity_level: int = 1) -> None:
    """
    Sets verbosity level of console output
    :param verbosity_level: int corresponding to verbosity level of console output (0 is quiet, 1 is normal, 2 is
        verbose)
    """
    if verbosity_level not in range(4):
        raise ValueError(
            f"Invalid verbosity level: {verbosity_level}. "
            f"Must be one of: 0 (quiet + json output), 1 (normal), 2 (verbose), 3 (json output + verbose)"
        )
    if verbosity_level == 0:
        console.quiet = True
        err_console.quiet = True
        verbose_console.quiet = True
        json_console.quiet = False
    elif verbosity_level == 1:
        console.quiet = False
        err_console.quiet = False
        verbose_console.quiet = True
        json_console.quiet = True
    elif verbosity_level == 2:
        console.quiet = False
        err_console.quiet = False
        verbose_console.quiet = False
        json_console.quiet = True
    elif verbosity_level == 3:
        console.quiet = True
        err_console.quiet = True
        verbose_console.quiet = False
        json_console.quiet = False


def version_callback(value: bool):
    """
    Prints the current version/branch-name
    """
    if value:
        try:
            repo = Repo(os.path.dirname(os.path.dirname(__file__)))
            version = (
                f"CRYFT-CLI version: {__version__}/"
                f"{repo.active_branch.name}/"
                f"{repo.commit()}"
            )
        except (TypeError, GitError):
            version = f"CRYFT-CLI version: {__version__}"
        typer.echo(version)
        raise typer.Exit()


def commands_callback(value: bool):
    """
    Prints a tree of commands for the app
    """
    if value:
        cli = CLIManager()
        console.print(cli.generate_command_tree())
        raise typer.Exit()


def debug_callback(value: bool):
    if value:
        debug_file_loc = Path(
            os.getenv("CRYFT_CLI_DEBUG_FILE")
            or os.path.expanduser(defaults.config.debug_file_path)
        )
        if not debug_file_loc.exists():
            err_console.print(
                f"[red]Error: The debug file '{arg__(str(debug_file_loc))}' does not exist. This indicates that you"
                f" have not run a command which has logged debug output, or you deleted this file. Debug logging only"
                f" occurs if {arg__('use_cache')} is set to True in your config ({arg__('cryft-cli config set')}).[/red]"
            )
            raise typer.Exit()
        save_file_loc_ = Prompt.ask(
            "Enter the file location to save the debug log for the previous command.",
            default="~/.cryft-cli/debug-export",
        ).strip()
        save_file_loc = Path(os.path.expanduser(save_file_loc_))
        if not save_file_loc.parent.exists():
            if Confirm.ask(
                f"The directory '{save_file_loc.parent}' does not exist. Would you like to create it?"
            ):
                save_file_loc.parent.mkdir(parents=True, exist_ok=True)
        try:
            with (
                open(save_file_loc, "w+") as save_file,
                open(debug_file_loc, "r") as current_file,
            ):
                save_file.write(current_file.read())
                console.print(f"Saved debug log to {save_file_loc}")
        except FileNotFoundError as e:
            print_error(str(e))
        raise typer.Exit()


class CLIManager:
    """
    :var app: the main CLI Typer app
    :var config_app: the Typer app as it relates to config commands
    :var subnets_app: the Typer app as it relates to subnet commands
    :var store: the `AppStore` holding keys and subnet configurations
    """

    app: typer.Typer
    config_app: typer.Typer
    subnets_app: typer.Typer
    store: AppStore

    def __init__(self):
        self.config = {
            "network": None,
            "key_name": None,
            "base_dir": None,
            "use_cache": True,
        }
        self.store = AppStore()

        try:
            uvloop = importlib.import_module("uvloop")
            self.event_loop = uvloop.new_event_loop()
        except ModuleNotFoundError:
            self.event_loop = asyncio.new_event_loop()

        self.config_path = os.getenv("CRYFT_CLI_CONFIG_PATH") or os.path.expanduser(
            defaults.config.path
        )
        self.debug_file_path = os.getenv(
            "CRYFT_CLI_DEBUG_FILE"
        ) or os.path.expanduser(defaults.config.debug_file_path)

        self.app = typer.Typer(
            rich_markup_mode="rich",
            callback=self.main_callback,
            epilog=_epilog,
            no_args_is_help=True,
        )
        self.config_app = typer.Typer(
            epilog=_epilog,
            help=f"Allows for getting/setting the config. "
            f"Default path for the config file is {arg__(defaults.config.path)}. "
            f"You can set your own with the env var {arg__('CRYFT_CLI_CONFIG_PATH')}",
        )
        self.subnets_app = typer.Typer(epilog=_epilog)

        # config alias
        self.app.add_typer(
            self.config_app,
            name="config",
            short_help="Config commands, aliases: `c`, `conf`",
            no_args_is_help=True,
        )
        self.app.add_typer(
            self.config_app, name="conf", hidden=True, no_args_is_help=True
        )
        self.app.add_typer(self.config_app, name="c", hidden=True, no_args_is_help=True)

        # subnets aliases
        self.app.add_typer(
            self.subnets_app,
            name="subnet",
            short_help="Subnet commands, alias: `s`, `subnets`",
            no_args_is_help=True,
        )
        self.app.add_typer(
            self.subnets_app, name="s", hidden=True, no_args_is_help=True
        )
        self.app.add_typer(
            self.subnets_app, name="subnets", hidden=True, no_args_is_help=True
        )

        # config commands
        self.config_app.command(
            "set", rich_help_panel=HELP_PANELS["CONFIG"]["MANAGEMENT"]
        )(self.set_config)
        self.config_app.command(
            "get", rich_help_panel=HELP_PANELS["CONFIG"]["MANAGEMENT"]
        )(self.get_config)
        self.config_app.command(
            "clear", rich_help_panel=HELP_PANELS["CONFIG"]["MANAGEMENT"]
        )(self.del_config)

        # subnet commands
        self.subnets_app.command(
            "create", rich_help_panel=HELP_PANELS["SUBNETS"]["CREATION"]
        )(self.subnets_create)
        self.subnets_app.command(
            "list", rich_help_panel=HELP_PANELS["SUBNETS"]["INFO"]
        )(self.subnets_list)
        self.subnets_app.command(
            "addValidator", rich_help_panel=HELP_PANELS["SUBNETS"]["VALIDATORS"]
        )(self.subnets_add_validator)
        self.subnets_app.command(
            "add-validator",
            rich_help_panel=HELP_PANELS["SUBNETS"]["VALIDATORS"],
            hidden=True,
        )(self.subnets_add_validator)

    def generate_command_tree(self) -> Tree:
        """
        Generates a rich.Tree of the commands, subcommands, and groups of this app
        """

        def build_rich_tree(data: dict, parent: Tree):
            for group, content in data.get("groups", {}).items():
                group_node = parent.add(
                    f"[bold cyan]{group}[/]"
                )  # Add group to the tree
                for command in content.get("commands", []):
                    group_node.add(f"[green]{command}[/]")  # Add commands to the group
                build_rich_tree(content, group_node)  # Recurse for subgroups

        def traverse_group(group: typer.Typer) -> dict:
            tree = {}
            if commands := [
                cmd.name for cmd in group.registered_commands if not cmd.hidden
            ]:
                tree["commands"] = commands
            for group in group.registered_groups:
                if "groups" not in tree:
                    tree["groups"] = {}
                if not group.hidden:
                    if group_transversal := traverse_group(group.typer_instance):
                        tree["groups"][group.name] = group_transversal

            return tree

        groups_and_commands = traverse_group(self.app)
        root = Tree("[bold magenta]CRYFT-CLI Commands[/]")  # Root node
        build_rich_tree(groups_and_commands, root)
        return root

    def _run_command(self, cmd: Coroutine, json_output: bool = False):
        """
        Runs the supplied coroutine on the event loop. Any error exits the command with a non-zero status.
        """

        async def _run():
            exception_occurred = False
            try:
                return await cmd
            except CryftCLIError as e:
                if json_output:
                    json_console.print(json_error(str(e)))
                else:
                    print_error(str(e))
                logger.debug(f"{type(e).__name__}: {e}")
                verbose_console.print(traceback.format_exc())
                exception_occurred = True
            except KeyboardInterrupt:
                err_console.print("Aborted.")
                exception_occurred = True
            except Exception as e:
                err_console.print(f"An unknown error has occurred: {e}")
                logger.exception("Unhandled error")
                verbose_console.print(traceback.format_exc())
                exception_occurred = True
            finally:
                if exception_occurred:
                    raise typer.Exit(code=1)

        return self.event_loop.run_until_complete(_run())

    def main_callback(
        self,
        version: Annotated[
            Optional[bool],
            typer.Option(
                "--version", callback=version_callback, help="Show CRYFT-CLI version"
            ),
        ] = None,
        commands: Annotated[
            Optional[bool],
            typer.Option(
                "--commands", callback=commands_callback, help="Show CRYFT-CLI commands"
            ),
        ] = None,
        debug_log: Annotated[
            Optional[bool],
            typer.Option(
                "--debug",
                callback=debug_callback,
                help="Saves the debug log from the last used command",
            ),
        ] = None,
    ):
        """
        Command line interface for creating subnets and managing their validators. Uses the values in the
            configuration file. These values can be overridden by passing them explicitly in the command line.
        """
        # Load or create the config file
        if os.path.exists(self.config_path):
            with open(self.config_path, "r") as f:
                config = safe_load(f) or {}
        else:
            directory_path = Path(self.config_path).parent
            directory_path.mkdir(exist_ok=True, parents=True)
            config = defaults.config.dictionary.copy()
            with open(self.config_path, "w") as f:
                safe_dump(config, f)

        # Update missing values
        updated = False
        for key, value in defaults.config.dictionary.items():
            if key not in config:
                config[key] = value
                updated = True
            elif isinstance(value, bool) and config[key] is None:
                config[key] = value
                updated = True
        if updated:
            with open(self.config_path, "w") as f:
                safe_dump(config, f)

        for k, v in config.items():
            if k in self.config.keys():
                self.config[k] = v
        self.store = AppStore(self.config.get("base_dir"))

        if self.config.get("use_cache", False):
            Path(self.debug_file_path).parent.mkdir(parents=True, exist_ok=True)
            with open(self.debug_file_path, "w+") as f:
                f.write(
                    f"CRYFT-CLI {__version__}\n"
                    f"Aiohttp: {importlib.metadata.version('aiohttp')}\n"
                    f"Command: {' '.join(sys.argv)}\n"
                    f"Config: {self.config}\n"
                    f"Python: {sys.version}\n"
                    f"System: {sys.platform}\n\n"
                )
            logger.setLevel(logging.DEBUG)
            formatter = logging.Formatter(
                "%(asctime)s - %(levelname)s - %(name)s - %(module)s:%(lineno)d - %(message)s"
            )
            handler = logging.FileHandler(self.debug_file_path)
            handler.setFormatter(formatter)
            logger.addHandler(handler)

    def verbosity_handler(
        self, quiet: bool, verbose: bool, json_output: bool = False
    ) -> None:
        if quiet and verbose:
            err_console.print("Cannot specify both `--quiet` and `--verbose`")
            raise typer.Exit(code=1)
        if json_output and verbose:
            verbosity_console_handler(3)
        elif json_output or quiet:
            verbosity_console_handler(0)
        elif verbose:
            verbosity_console_handler(2)
        else:
            verbosity_console_handler(1)

    def set_config(
        self,
        network: Optional[str] = Options.network,
        key_name: Optional[str] = Options.key_name,
        base_dir: Optional[str] = typer.Option(
            None,
            "--base-dir",
            help="Directory holding keys and subnet configurations. Default: `~/.cryft-cli`.",
        ),
        use_cache: Optional[bool] = typer.Option(
            None,
            "--cache/--no-cache",
            help="Enable or disable writing the debug log of the last command.",
        ),
    ):
        """
        Sets or updates configuration values in the CRYFT-CLI config file.

        USAGE
        Interactive mode:
            [green]$[/green] cryft-cli config set

        Set specific values:
            [green]$[/green] cryft-cli config set --network Fuji --key mykey
        """
        args = {
            "network": network,
            "key_name": key_name,
            "base_dir": base_dir,
            "use_cache": use_cache,
        }
        if all(v is None for v in args.values()):
            self.get_config()
            config_keys = list(args.keys())
            console.print("Which config setting would you like to update?\n")
            for idx, key in enumerate(config_keys, start=1):
                console.print(f"{idx}. {key}")
            choice = int(
                Prompt.ask(
                    "\nEnter the [bold]number[/bold] of the config setting you want to update",
                    choices=[str(i) for i in range(1, len(config_keys) + 1)],
                    show_choices=False,
                )
            )
            arg = config_keys[choice - 1]
            if arg == "use_cache":
                args[arg] = Confirm.ask(
                    f"What value would you like to assign to [red]{arg}[/red]?",
                    default=True,
                )
            elif arg == "network":
                args[arg] = validate_network(
                    Prompt.ask(
                        f"What value would you like to assign to [red]{arg}[/red]?",
                        choices=[str(n) for n in Network],
                    )
                )
            else:
                args[arg] = Prompt.ask(
                    f"What value would you like to assign to [red]{arg}[/red]?"
                )

        for arg, val in args.items():
            if val is not None:
                logger.debug(f"Config: setting {arg} to {val}")
                self.config[arg] = val
        with open(self.config_path, "w") as f:
            safe_dump(self.config, f)

        # Print latest configs after updating
        self.get_config()

    def del_config(
        self,
        network: bool = typer.Option(False, "--network"),
        key_name: bool = typer.Option(False, "--key", "--key-name"),
        base_dir: bool = typer.Option(False, "--base-dir"),
        use_cache: bool = typer.Option(False, "--cache"),
        all_items: bool = typer.Option(False, "--all"),
    ):
        """
        Clears the fields in the config file and sets them to 'None'.

        # EXAMPLE

            - To clear the 'network' field:

                [green]$[/green] cryft-cli config clear --network

            - To clear your config entirely:

                [green]$[/green] cryft-cli config clear --all
        """
        if all_items:
            if Confirm.ask("Do you want to clear all configurations?"):
                self.config = {key: None for key in self.config}
                console.print("All configurations have been cleared and set to 'None'.")
                with open(self.config_path, "w") as f:
                    safe_dump(self.config, f)
            else:
                console.print("Operation cancelled.")
            return

        args = {
            "network": network,
            "key_name": key_name,
            "base_dir": base_dir,
            "use_cache": use_cache,
        }

        # If no specific argument is provided, iterate over all
        to_clear = [a for a, v in args.items() if v] or list(args.keys())
        for arg in to_clear:
            if self.config.get(arg) is None:
                if args[arg]:
                    console.print(
                        f"No config set for {arg__(arg)}. Use {arg__('cryft-cli config set')} to set it."
                    )
                continue
            if Confirm.ask(
                f"Do you want to clear the {arg__(arg)}"
                f" [bold cyan]({self.config.get(arg)})[/bold cyan] config?"
            ):
                logger.debug(f"Config: clearing {arg}.")
                self.config[arg] = None
                console.print(f"Cleared {arg__(arg)} config and set to 'None'.")
            else:
                console.print(f"Skipped clearing {arg__(arg)} config.")
        with open(self.config_path, "w") as f:
            safe_dump(self.config, f)

    def get_config(self):
        """
        Prints the current config file in a table.
        """
        table = Table(
            Column("[bold white]Name", style=f"{COLORS.G.ARG}"),
            Column("[bold white]Value", style="gold1"),
            box=box.SIMPLE_HEAD,
            title=f"[{COLORS.G.HEADER}]CRYFT-CLI Config[/{COLORS.G.HEADER}]: {arg__(self.config_path)}",
        )

        for key, value in self.config.items():
            if key == "network" and value is None:
                value = "None (prompted)"
            elif key == "base_dir" and value is None:
                value = f"None (default = {defaults.config.base_path})"
            table.add_row(str(key), str(value))

        console.print(table)

    def subnets_create(
        self,
        subnet_name: str = typer.Argument(..., help="Name of the subnet to create."),
        genesis_file: Optional[str] = Options.genesis_file,
        vm_file: Optional[str] = Options.vm_file,
        use_evm: bool = Options.use_evm,
        use_custom: bool = Options.use_custom,
        force: bool = Options.force,
        quiet: bool = Options.quiet,
        verbose: bool = Options.verbose,
    ):
        """
        Creates a new subnet configuration.

        The command is an interactive wizard that builds the genesis file of the subnet. It supports Subnet-EVM
        and custom VMs. A custom genesis and VM binary can be provided with the `--genesis` and `--vm` flags.

        By default, running the command with a subnet name that already exists fails. To overwrite an existing
        configuration, pass `--force`.

        [bold]Common Examples:[/bold]

        1. Interactive subnet creation:
        [green]$[/green] cryft-cli subnet create mysubnet

        2. Custom VM with an existing genesis:
        [green]$[/green] cryft-cli subnet create mysubnet --custom --genesis ./genesis.json --vm ./myvm
        """
        self.verbosity_handler(quiet, verbose)
        logger.debug(
            f"args:\nsubnet_name: {subnet_name}\ngenesis: {genesis_file}\nvm: {vm_file}\n"
            f"evm: {use_evm}\ncustom: {use_custom}\nforce: {force}\n"
        )
        return self._run_command(
            subnet_create.create(
                self.store,
                subnet_name,
                genesis_file=genesis_file,
                vm_file=vm_file,
                use_evm=use_evm,
                use_custom=use_custom,
                force=force,
            )
        )

    def subnets_list(
        self,
        quiet: bool = Options.quiet,
        verbose: bool = Options.verbose,
    ):
        """
        Lists the local subnet configurations and the subnet IDs they were deployed with.

        EXAMPLE

        [green]$[/green] cryft-cli subnet list
        """
        self.verbosity_handler(quiet, verbose)
        return self._run_command(subnet_create.list_subnets(self.store))

    def subnets_add_validator(
        self,
        subnet_name: str = typer.Argument(
            ..., help="Name of the deployed subnet to add the validator to."
        ),
        key_name: Optional[str] = Options.key_name,
        network: Optional[str] = Options.network,
        node_id: Optional[str] = Options.node_id,
        weight: Optional[int] = Options.weight,
        start_time: Optional[str] = Options.start_time,
        staking_period: Optional[str] = Options.staking_period,
        json_output: bool = Options.json_output,
        quiet: bool = Options.quiet,
        verbose: bool = Options.verbose,
    ):
        """
        Allows a primary network validator to validate your subnet.

        To add the validator to the subnet's allow list, provide the subnet name and the validator's unique
        NodeID. The command then prompts for the validation start time, duration and stake weight. These values
        can all be collected with flags instead of prompts.

        This command currently only works on subnets deployed to the Fuji testnet.

        [bold]Common Examples:[/bold]

        1. Interactive:
        [green]$[/green] cryft-cli subnet addValidator mysubnet

        2. Non-interactive:
        [green]$[/green] cryft-cli subnet addValidator mysubnet --key mykey --network Fuji --nodeID NodeID-7Xhw2mDxuDS44j42TCB6U5579esbSt3Lg --weight 20 --start-time "2030-01-01 00:00:00" --staking-period 720h
        """
        self.verbosity_handler(quiet, verbose, json_output)
        network_ = network or self.config.get("network")
        if network_:
            try:
                network_ = Network.from_string(network_)
            except ValueError as e:
                print_error(f"{e}. Update it with {arg__('cryft-cli config set')}")
                raise typer.Exit(code=1)
        request = AddValidatorRequest(
            subnet_name=subnet_name,
            key_name=key_name or self.config.get("key_name"),
            node_id=node_id,
            weight=weight,
            start_time=start_time,
            staking_period=staking_period,
            network=network_ or None,
        )
        return self._run_command(
            subnet_validators.add_validator(
                request, self.store, json_output=json_output
            ),
            json_output=json_output,
        )

    def run(self):
        self.app()


def main():
    manager = CLIManager()
    manager.run()


if __name__ == "__main__":
    main()
