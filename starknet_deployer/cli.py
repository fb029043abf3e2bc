"""Command line interface of the deployer"""

import argparse
import asyncio
import logging
import os
import sys
from typing import List, Optional

from . import __version__
from .account import Signer, SingleOwnerAccount, load_account_config
from .constants import DEFAULT_UDC_ADDRESS, DEFAULT_WATCH_INTERVAL
from .decode import FeltDecoder
from .deployer import NETWORK_ERRORS, DeploymentRequest, run_deployment
from .fee import fee_setting_from_args
from .provider import JsonRpcProvider
from .salt_search import prefix_predicate
from .util import (
    ConfigurationError,
    StarknetDeployerException,
    fixed_length_hex,
    parse_hex_felt,
    warn,
)

logger = logging.getLogger(__name__)


class NonNegativeAction(argparse.Action):
    """
    Action for parsing the non negative int argument.
    """

    def __call__(self, parser, namespace, values, option_string=None):
        error_msg = f"{option_string} must be a non-negative integer; got: {values}."
        try:
            value = int(values)
        except ValueError:
            parser.error(error_msg)

        if value < 0:
            parser.error(error_msg)

        setattr(namespace, self.dest, value)


class PositiveAction(argparse.Action):
    """
    Action for parsing positive int argument;
    """

    def __call__(self, parser, namespace, values, option_string=None):
        error_msg = f"argument {option_string} must be a positive integer; got: {values}."
        try:
            value = int(values)
        except ValueError:
            parser.error(error_msg)

        if value <= 0:
            parser.error(error_msg)

        setattr(namespace, self.dest, value)


def parse_args(raw_args: Optional[List[str]] = None):
    """
    Parses CLI arguments.
    """
    parser = argparse.ArgumentParser(
        description="Deploy a declared Starknet class through the Universal Deployer Contract"
    )
    parser.add_argument(
        "--version",
        help="Print the version",
        action="version",
        version=__version__,
    )
    parser.add_argument("class_hash", help="Class hash (hex, 0x optional)")
    parser.add_argument(
        "ctor_args",
        nargs="*",
        help="Raw constructor arguments (e.g. 0x1, 42, str:name, u256:1000, const:felt_max)",
    )
    parser.add_argument(
        "--rpc",
        default=os.environ.get("STARKNET_RPC"),
        help="Starknet JSON-RPC endpoint; defaults to $STARKNET_RPC",
    )
    parser.add_argument(
        "--account",
        default=os.environ.get("STARKNET_ACCOUNT"),
        help="Path to account config JSON file; defaults to $STARKNET_ACCOUNT",
    )
    parser.add_argument(
        "--private-key",
        default=os.environ.get("STARKNET_PRIVATE_KEY"),
        help="Private key of the account; defaults to $STARKNET_PRIVATE_KEY",
    )
    parser.add_argument(
        "--not-unique",
        action="store_true",
        help="Do not derive contract address from deployer address",
    )
    parser.add_argument(
        "--salt",
        help="Use the given salt (hex, 0x optional) to compute contract deploy address",
    )
    parser.add_argument(
        "--prefix",
        help="Search for a salt whose address (64 hex digits, no 0x) starts with this prefix",
    )
    parser.add_argument(
        "--salt-start",
        help="Salt (hex, 0x optional) the prefix search starts from; defaults to 0",
    )
    parser.add_argument(
        "--max-iterations",
        action=PositiveAction,
        help="Give up the prefix search after this many salts; unbounded by default",
    )
    parser.add_argument("--max-fee", help="Maximum transaction fee in ETH")
    parser.add_argument("--max-fee-raw", help="Maximum transaction fee in Wei")
    parser.add_argument(
        "--estimate-only",
        action="store_true",
        help="Only estimate transaction fee without sending transaction",
    )
    parser.add_argument(
        "--udc-address",
        default=hex(DEFAULT_UDC_ADDRESS),
        help=f"Address of the Universal Deployer Contract; defaults to {hex(DEFAULT_UDC_ADDRESS)}",
    )
    parser.add_argument(
        "--watch", action="store_true", help="Wait for the transaction to confirm"
    )
    parser.add_argument(
        "--watch-interval",
        action=NonNegativeAction,
        default=DEFAULT_WATCH_INTERVAL,
        help=f"Seconds between confirmation polls; defaults to {DEFAULT_WATCH_INTERVAL}",
    )
    parser.add_argument(
        "--watch-timeout",
        action=PositiveAction,
        help="Give up waiting for confirmation after this many seconds",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Log progress (-v) and RPC traffic (-vv) to stderr",
    )

    parsed_args = parser.parse_args(raw_args)

    if parsed_args.salt is not None and parsed_args.prefix is not None:
        parser.error("Only one of {--salt,--prefix} can be provided")

    if parsed_args.prefix is None:
        for option, value in (
            ("--salt-start", parsed_args.salt_start),
            ("--max-iterations", parsed_args.max_iterations),
        ):
            if value is not None:
                parser.error(f"--prefix required if {option} present")

    if parsed_args.watch_timeout is not None and not parsed_args.watch:
        parser.error("--watch required if --watch-timeout present")

    return parsed_args


def setup_logging(verbosity: int):
    """Logs to stderr so that stdout only carries the deployed address"""
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity > 1:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_request(args: argparse.Namespace) -> DeploymentRequest:
    """Decodes user input; raises ConfigurationError before any network call"""
    return DeploymentRequest(
        class_hash=parse_hex_felt(args.class_hash),
        ctor_args=FeltDecoder().decode_all(args.ctor_args),
        unique=not args.not_unique,
        salt=parse_hex_felt(args.salt) if args.salt is not None else None,
        accept=prefix_predicate(args.prefix) if args.prefix is not None else None,
        salt_start=parse_hex_felt(args.salt_start) if args.salt_start is not None else 0,
        max_iterations=args.max_iterations,
        fee_setting=fee_setting_from_args(
            max_fee=args.max_fee,
            max_fee_raw=args.max_fee_raw,
            estimate_only=args.estimate_only,
        ),
        udc_address=parse_hex_felt(args.udc_address),
        watch=args.watch,
        watch_interval=args.watch_interval,
        watch_timeout=args.watch_timeout,
    )


async def deploy(args: argparse.Namespace):
    """Loads account and signer, connects, and runs the deployment"""
    request = build_request(args)
    if not request.unique:
        warn(
            "WARNING: the address of a not unique deployment does not depend on the deployer; "
            "anyone can deploy to it first."
        )

    if not args.account:
        raise ConfigurationError("no account config given (--account or $STARKNET_ACCOUNT)")
    account_config = load_account_config(args.account)

    if not args.private_key:
        raise ConfigurationError(
            "no private key given (--private-key or $STARKNET_PRIVATE_KEY)"
        )
    signer = Signer(parse_hex_felt(args.private_key))

    if not args.rpc:
        raise ConfigurationError("no RPC endpoint given (--rpc or $STARKNET_RPC)")
    provider = JsonRpcProvider(args.rpc)

    chain_id = await provider.chain_id()
    logger.info("Connected to chain %#x", chain_id)

    account = SingleOwnerAccount(
        provider=provider,
        signer=signer,
        address=account_config.address,
        chain_id=chain_id,
        legacy=account_config.legacy,
    )
    return await run_deployment(request, account)


def main(raw_args: Optional[List[str]] = None):
    """Runs the deployer."""
    args = parse_args(raw_args)
    setup_logging(args.verbose)

    try:
        result = asyncio.run(deploy(args))
    except StarknetDeployerException as error:
        sys.exit(f"Error: {error}")
    except NETWORK_ERRORS as error:
        sys.exit(f"Error: network: {error}")
    except KeyboardInterrupt:
        sys.exit("Error: interrupted")

    if not result.estimate_only:
        # Only the contract goes to stdout so this can be easily scripted
        print(fixed_length_hex(result.address))


if __name__ == "__main__":
    main()
