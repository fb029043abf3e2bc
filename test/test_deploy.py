"""Test the deployment workflow against a scripted provider"""

import asyncio
import io

import pytest
from starkware.starknet.public.abi import get_selector_from_name

from starknet_deployer.address import NotUnique, Unique, derive
from starknet_deployer.constants import DEFAULT_UDC_ADDRESS
from starknet_deployer.deployer import DeploymentRequest, UdcDeployment, run_deployment
from starknet_deployer.fee import Automatic, EstimateOnly, Manual
from starknet_deployer.provider import RpcError
from starknet_deployer.salt_search import prefix_predicate
from starknet_deployer.util import (
    ConfigurationError,
    ConfirmationError,
    EstimationError,
    SearchExhausted,
    SubmissionError,
    TransactionRejectedError,
    fixed_length_hex,
)

from .shared import CLASS_HASH, DEPLOYER_ADDRESS, ESTIMATED_FEE, TX_HASH
from .util import FakeProvider, make_account, sent_udc_inputs

PREFIX = "04"


def deploy(request, provider):
    """Run the workflow; returns result and printed progress"""
    out = io.StringIO()
    result = asyncio.run(run_deployment(request, make_account(provider), out=out))
    return result, out.getvalue()


def test_udc_call():
    """deployContract(class_hash, salt, unique, calldata_len, *calldata)"""
    deployment = UdcDeployment(CLASS_HASH, 5, Unique(DEPLOYER_ADDRESS), [7, 8])

    call = deployment.call

    assert call.to_address == DEFAULT_UDC_ADDRESS
    assert get_selector_from_name(call.function) == get_selector_from_name("deployContract")
    assert call.inputs == [CLASS_HASH, 5, 1, 2, 7, 8]
    assert deployment.address == derive(5, CLASS_HASH, Unique(DEPLOYER_ADDRESS), [7, 8])


def test_not_unique_udc_call():
    """Not unique deployments pass 0 as the unique flag"""
    deployment = UdcDeployment(CLASS_HASH, 5, NotUnique(), [])
    assert deployment.call.inputs == [CLASS_HASH, 5, 0, 0]


def test_mismatching_udc():
    """The UDC in the unique mode must be the one called"""
    with pytest.raises(ConfigurationError):
        UdcDeployment(CLASS_HASH, 5, Unique(DEPLOYER_ADDRESS, udc_address=0x1), [])


def test_estimate_only_submits_nothing():
    """Estimate only prints the decimal fee and stops"""
    provider = FakeProvider(estimated_fee=1_500_000_000_000_000)
    request = DeploymentRequest(
        class_hash=CLASS_HASH, accept=prefix_predicate(PREFIX), fee_setting=EstimateOnly()
    )

    result, output = deploy(request, provider)

    assert result.estimate_only
    assert result.transaction_hash is None
    assert result.fee == 1_500_000_000_000_000
    assert "0.0015 ETH" in output
    assert len(provider.estimate_requests) == 1
    assert provider.sent_transactions == []


def test_automatic_submits_once_with_buffer():
    """End to end: search, estimate, buffer, submit"""
    provider = FakeProvider()
    request = DeploymentRequest(
        class_hash=CLASS_HASH, accept=prefix_predicate(PREFIX), fee_setting=Automatic()
    )

    result, output = deploy(request, provider)

    assert fixed_length_hex(result.address)[2:].startswith(PREFIX)
    assert result.transaction_hash == TX_HASH
    assert result.transaction_hash != result.address
    assert result.fee == ESTIMATED_FEE * 3 // 2

    (transaction,) = provider.sent_transactions
    assert int(transaction["max_fee"], 16) == ESTIMATED_FEE * 3 // 2
    assert fixed_length_hex(result.address) in output
    assert fixed_length_hex(TX_HASH) in output


def test_submitted_address_matches_searched_address():
    """The address implied by the submitted call is the searched one"""
    provider = FakeProvider()
    request = DeploymentRequest(
        class_hash=CLASS_HASH,
        ctor_args=[1, 2, 3],
        accept=prefix_predicate(PREFIX),
        fee_setting=Manual(10),
    )

    result, _ = deploy(request, provider)

    (transaction,) = provider.sent_transactions
    class_hash, salt, unique, calldata_len, *ctor_args = sent_udc_inputs(transaction)
    assert (class_hash, salt, unique, calldata_len) == (CLASS_HASH, result.salt, 1, 3)
    submitted_address = derive(
        salt, class_hash, Unique(DEPLOYER_ADDRESS, DEFAULT_UDC_ADDRESS), ctor_args
    )
    assert submitted_address == result.address


def test_manual_fee_never_estimates():
    """Manual fee skips estimation entirely"""
    provider = FakeProvider()
    request = DeploymentRequest(class_hash=CLASS_HASH, salt=0x99, fee_setting=Manual(123))

    result, _ = deploy(request, provider)

    assert provider.estimate_requests == []
    assert result.salt == 0x99
    assert result.fee == 123
    assert int(provider.sent_transactions[0]["max_fee"], 16) == 123


def test_fixed_salt_bypasses_search():
    """A given salt is used as is, in not unique mode too"""
    provider = FakeProvider()
    request = DeploymentRequest(
        class_hash=CLASS_HASH, salt=0x99, unique=False, fee_setting=Manual(1)
    )

    result, _ = deploy(request, provider)

    assert result.address == derive(0x99, CLASS_HASH, NotUnique(), [])
    assert sent_udc_inputs(provider.sent_transactions[0])[:3] == [CLASS_HASH, 0x99, 0]


def test_random_salt_when_not_searching():
    """Without salt or predicate a random salt is used"""
    provider = FakeProvider()
    request = DeploymentRequest(class_hash=CLASS_HASH, fee_setting=Manual(1))

    result, _ = deploy(request, provider)

    assert result.address == derive(result.salt, CLASS_HASH, Unique(DEPLOYER_ADDRESS), [])


def test_search_exhausted_before_network():
    """A capped search fails before any network call"""
    provider = FakeProvider()
    request = DeploymentRequest(
        class_hash=CLASS_HASH, accept=lambda _: False, max_iterations=3
    )

    with pytest.raises(SearchExhausted):
        deploy(request, provider)

    assert provider.estimate_requests == []
    assert provider.sent_transactions == []


def test_estimation_error():
    """Estimation failure aborts before submission"""
    provider = FakeProvider(estimate_error=RpcError(code=40, message="Contract error"))
    request = DeploymentRequest(class_hash=CLASS_HASH, salt=1)

    with pytest.raises(EstimationError, match="Contract error"):
        deploy(request, provider)

    assert provider.sent_transactions == []


def test_submission_error():
    """Submission failure is reported once, without retry"""
    provider = FakeProvider(send_error=RpcError(code=52, message="Invalid transaction nonce"))
    request = DeploymentRequest(class_hash=CLASS_HASH, salt=1)

    with pytest.raises(SubmissionError, match="Invalid transaction nonce") as error:
        deploy(request, provider)

    assert error.value.stage == "submission"
    assert len(provider.sent_transactions) == 1


def test_watch_confirmed():
    """Waiting polls the receipt of the submitted transaction"""
    provider = FakeProvider(receipts=[{"status": "ACCEPTED_ON_L2"}])
    request = DeploymentRequest(
        class_hash=CLASS_HASH, salt=1, watch=True, watch_interval=0
    )

    result, output = deploy(request, provider)

    assert provider.receipt_requests == [TX_HASH]
    assert result.transaction_hash == TX_HASH
    assert "Contract deployed" in output


def test_watch_rejected():
    """A rejected deployment is a confirmation error"""
    provider = FakeProvider(receipts=[{"status": "REJECTED"}])
    request = DeploymentRequest(
        class_hash=CLASS_HASH, salt=1, watch=True, watch_interval=0
    )

    with pytest.raises(TransactionRejectedError):
        deploy(request, provider)


def test_watch_network_failure():
    """Network failures while waiting are confirmation errors"""
    provider = FakeProvider(receipts=[RpcError(code=-32603, message="Internal error")])
    request = DeploymentRequest(
        class_hash=CLASS_HASH, salt=1, watch=True, watch_interval=0
    )

    with pytest.raises(ConfirmationError) as error:
        deploy(request, provider)

    assert error.value.tx_hash == TX_HASH
    assert len(provider.sent_transactions) == 1


def test_unique_deployment_from_other_account():
    """A unique deployment is bound to the account it was derived for"""
    provider = FakeProvider()
    deployment = UdcDeployment(CLASS_HASH, 1, Unique(0x999), [])

    with pytest.raises(ConfigurationError):
        asyncio.run(deployment.send(make_account(provider), max_fee=1))

    assert provider.sent_transactions == []
