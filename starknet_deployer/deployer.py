"""
Deployment of contracts through the Universal Deployer Contract:
salt selection, fee resolution, submission and the optional confirmation wait.
"""

import asyncio
import functools
import logging
import secrets
import sys
import threading
from dataclasses import dataclass, field
from typing import List, Optional

import aiohttp

from .account import AccountCall, SingleOwnerAccount
from .address import NotUnique, Unique, UniquenessMode, derive
from .constants import (
    DEFAULT_UDC_ADDRESS,
    DEFAULT_WATCH_INTERVAL,
    UDC_DEPLOY_SELECTOR_NAME,
)
from .fee import Automatic, FeeSetting, ReportedAndStop, format_fee, resolve
from .provider import RpcError
from .salt_search import AddressPredicate, SaltSearchResult, search_salt
from .util import (
    ConfigurationError,
    ConfirmationError,
    DeployErrorCode,
    EstimationError,
    SubmissionError,
    fixed_length_hex,
    highlight,
)
from .watch import watch_tx

logger = logging.getLogger(__name__)

NETWORK_ERRORS = (RpcError, aiohttp.ClientError, asyncio.TimeoutError)


class UdcDeployment:
    """
    A `deployContract` call of the UDC with its target address computed once.
    The same instance is used for estimation and submission.
    """

    # pylint: disable=too-many-arguments
    def __init__(
        self,
        class_hash: int,
        salt: int,
        mode: UniquenessMode,
        ctor_args: List[int],
        udc_address: int = DEFAULT_UDC_ADDRESS,
    ):
        if isinstance(mode, Unique) and mode.udc_address != udc_address:
            raise ConfigurationError(
                f"Unique deployment derived for UDC {fixed_length_hex(mode.udc_address)} "
                f"cannot be sent to UDC {fixed_length_hex(udc_address)}"
            )

        self.class_hash = class_hash
        self.salt = salt
        self.mode = mode
        self.ctor_args = tuple(ctor_args)
        self.udc_address = udc_address
        self.address = derive(salt, class_hash, mode, self.ctor_args)

    @property
    def unique(self) -> bool:
        """Whether the UDC mixes the deployer address into the salt"""
        return isinstance(self.mode, Unique)

    @property
    def call(self) -> AccountCall:
        """The UDC call performing the deployment"""
        return AccountCall(
            to_address=self.udc_address,
            function=UDC_DEPLOY_SELECTOR_NAME,
            inputs=[
                self.class_hash,
                self.salt,
                int(self.unique),
                len(self.ctor_args),
                *self.ctor_args,
            ],
        )

    def check_deployer(self, account: SingleOwnerAccount):
        """The UDC mixes the caller into the salt, so it has to be the account in the mode"""
        if self.unique and self.mode.deployer_address != account.address:
            raise ConfigurationError(
                f"Unique deployment derived for deployer {fixed_length_hex(self.mode.deployer_address)} "
                f"cannot be sent from account {fixed_length_hex(account.address)}"
            )

    async def estimate_fee(self, account: SingleOwnerAccount) -> int:
        """Estimated overall fee in Wei"""
        self.check_deployer(account)
        try:
            return await account.estimate_fee([self.call])
        except NETWORK_ERRORS as error:
            raise EstimationError(str(error)) from error

    async def send(self, account: SingleOwnerAccount, max_fee: int) -> int:
        """
        Submits the deployment once; returns the transaction hash.
        Never retried here: a retry could deploy twice.
        """
        self.check_deployer(account)
        try:
            return await account.execute([self.call], max_fee=max_fee)
        except NETWORK_ERRORS as error:
            raise SubmissionError(str(error)) from error


@dataclass
class DeploymentRequest:
    """Decoded user input of a deployment"""

    class_hash: int
    ctor_args: List[int] = field(default_factory=list)
    unique: bool = True
    salt: Optional[int] = None
    accept: Optional[AddressPredicate] = None
    salt_start: int = 0
    max_iterations: Optional[int] = None
    fee_setting: FeeSetting = field(default_factory=Automatic)
    udc_address: int = DEFAULT_UDC_ADDRESS
    watch: bool = False
    watch_interval: float = DEFAULT_WATCH_INTERVAL
    watch_timeout: Optional[float] = None


@dataclass
class DeploymentResult:
    """
    Outcome of a deployment run.
    `transaction_hash` is None when only the fee was estimated.
    """

    salt: int
    address: int
    fee: int
    transaction_hash: Optional[int] = None

    @property
    def estimate_only(self) -> bool:
        """True if nothing was submitted"""
        return self.transaction_hash is None


def uniqueness_mode(request: DeploymentRequest, deployer_address: int) -> UniquenessMode:
    """Mode of the UDC address formula for the request"""
    if request.unique:
        return Unique(deployer_address=deployer_address, udc_address=request.udc_address)
    return NotUnique()


async def find_salt(
    request: DeploymentRequest, mode: UniquenessMode
) -> SaltSearchResult:
    """
    Runs the salt search in a worker thread.
    Cancelling the awaiting task stops the search.
    """
    cancel_event = threading.Event()
    search = functools.partial(
        search_salt,
        request.accept,
        request.class_hash,
        mode,
        request.ctor_args,
        start=request.salt_start,
        max_iterations=request.max_iterations,
        cancel_event=cancel_event,
    )

    loop = asyncio.get_running_loop()
    try:
        return await loop.run_in_executor(None, search)
    except asyncio.CancelledError:
        cancel_event.set()
        raise


async def choose_deployment(
    request: DeploymentRequest, deployer_address: int, out=None
) -> UdcDeployment:
    """
    Picks the salt (given, searched or random) and freezes the target address.
    """
    out = out or sys.stderr
    mode = uniqueness_mode(request, deployer_address)

    if request.salt is not None:
        salt = request.salt
        searched_address = None
    elif request.accept is not None:
        result = await find_salt(request, mode)
        salt, searched_address = result.salt, result.address
        print(f"Right salt is: {highlight(hex(salt))}", file=out)
        print(f"Associated address: {highlight(fixed_length_hex(result.address))}", file=out)
    else:
        salt = secrets.randbits(251)
        searched_address = None

    deployment = UdcDeployment(
        class_hash=request.class_hash,
        salt=salt,
        mode=mode,
        ctor_args=request.ctor_args,
        udc_address=request.udc_address,
    )
    if searched_address is not None and deployment.address != searched_address:
        raise AssertionError(
            f"Searched address {fixed_length_hex(searched_address)} differs from "
            f"deployment address {fixed_length_hex(deployment.address)}"
        )
    return deployment


async def wait_for_confirmation(
    account: SingleOwnerAccount, tx_hash: int, request: DeploymentRequest, out=None
):
    """Waits for the transaction; network failures while waiting are confirmation errors"""
    out = out or sys.stderr
    print(
        f"Waiting for transaction {highlight(fixed_length_hex(tx_hash))} to confirm...",
        file=out,
    )
    try:
        await watch_tx(
            account.provider,
            tx_hash,
            poll_interval=request.watch_interval,
            timeout=request.watch_timeout,
        )
    except NETWORK_ERRORS as error:
        raise ConfirmationError(
            DeployErrorCode.CONFIRMATION_FAILED, tx_hash, str(error)
        ) from error


async def run_deployment(
    request: DeploymentRequest, account: SingleOwnerAccount, out=None
) -> DeploymentResult:
    """
    Deploys `request.class_hash` from `account`.
    Progress is printed to `out` (stderr by default).
    Any failing stage aborts the rest of the pipeline.
    """
    out = out or sys.stderr

    deployment = await choose_deployment(request, account.address, out=out)

    outcome = await resolve(
        request.fee_setting, functools.partial(deployment.estimate_fee, account)
    )
    if isinstance(outcome, ReportedAndStop):
        print(highlight(format_fee(outcome.estimated_fee)), file=out)
        return DeploymentResult(
            salt=deployment.salt,
            address=deployment.address,
            fee=outcome.estimated_fee,
        )

    max_fee = outcome.fee
    print(
        f"Deploying class {highlight(fixed_length_hex(deployment.class_hash))} "
        f"with salt {highlight(fixed_length_hex(deployment.salt))}...",
        file=out,
    )
    print(
        f"The contract will be deployed at address {highlight(fixed_length_hex(deployment.address))}",
        file=out,
    )
    print(f"Max fee: {highlight(format_fee(max_fee))}", file=out)

    tx_hash = await deployment.send(account, max_fee)
    print(
        f"Contract deployment transaction: {highlight(fixed_length_hex(tx_hash))}",
        file=out,
    )

    if request.watch:
        await wait_for_confirmation(account, tx_hash, request, out=out)

    print("Contract deployed:", file=out)

    return DeploymentResult(
        salt=deployment.salt,
        address=deployment.address,
        fee=max_fee,
        transaction_hash=tx_hash,
    )
