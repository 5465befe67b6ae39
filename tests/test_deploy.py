import pytest
from eth_utils import is_same_address

from creator_passport.constants import OPERATIONS_ADDRESS, OPERATIONS_FEE
from creator_passport.contracts import PassportContract
from creator_passport.deploy import Deployer, verify_constants
from creator_passport.errors import (
    ConstantMismatchWarning,
    InsufficientFundsError,
    LowBalanceWarning,
    RpcUnavailableError,
    StateVerificationError,
)
from tests.conftest import TARGET_ADDRESS


def test_deploy(transactor, chain, owner, passport_artifact):
    result = Deployer(transactor).deploy(passport_artifact)

    assert result.contract_address in chain.contracts
    assert result.implementation_address is None
    assert result.transaction.confirmations >= transactor.required_confirmations
    assert result.warnings == ()
    assert len(chain.sent) == 1
    assert chain.contracts[result.contract_address].owner == owner.address


def test_deploy_zero_balance_on_testnet_warns(transactor, chain, passport_artifact):
    chain.default_balance = 0
    result = Deployer(transactor).deploy(passport_artifact)

    assert result.contract_address in chain.contracts
    assert [w.kind for w in result.warnings] == [LowBalanceWarning.__name__]


def test_deploy_zero_balance_on_production_fails(
    make_transactor, owner, production_profile, chain, passport_artifact
):
    chain.default_balance = 0
    transactor = make_transactor(owner, network_profile=production_profile)
    with pytest.raises(InsufficientFundsError):
        Deployer(transactor).deploy(passport_artifact)
    assert chain.sent == []


def test_deploy_constant_mismatch_is_advisory(transactor, chain, passport_artifact):
    chain.operations_fee = OPERATIONS_FEE * 2
    chain.operations_address = TARGET_ADDRESS
    result = Deployer(transactor).deploy(passport_artifact)

    # the contract is deployed and reported regardless
    assert result.contract_address in chain.contracts
    assert len(result.warnings) == 2
    assert all(isinstance(w, ConstantMismatchWarning) for w in result.warnings)
    assert "Operations address mismatch" in str(result.warnings[0])
    assert "Operations fee mismatch" in str(result.warnings[1])


def test_verify_constants_read_failure(transactor, chain, passport_artifact):
    address = Deployer(transactor).deploy(passport_artifact).contract_address
    contract = PassportContract(transactor, address)
    chain.unavailable_calls = transactor.rpc_retries

    (warning,) = verify_constants(contract)
    assert isinstance(warning, ConstantMismatchWarning)
    assert OPERATIONS_ADDRESS in str(warning)


def test_verify_constants_does_not_swallow_other_errors(transactor, passport_artifact):
    class Broken:
        def operations_address(self):
            raise KeyError("unexpected")

        def operations_fee(self):
            return OPERATIONS_FEE

    with pytest.raises(KeyError):
        verify_constants(Broken())


def test_deploy_proxy(transactor, chain, owner, upgradeable_artifact, proxy_artifact):
    result = Deployer(transactor).deploy_proxy(upgradeable_artifact, proxy_artifact)

    assert len(chain.sent) == 2
    proxy = chain.contracts[result.contract_address]
    assert is_same_address(proxy.implementation, result.implementation_address)
    assert proxy.owner == owner.address
    assert result.warnings == ()

    contract = PassportContract(transactor, result.contract_address)
    assert contract.implementation_address() == result.implementation_address
    assert contract.owner() == owner.address


def test_deploy_proxy_wrong_implementation(
    transactor, chain, upgradeable_artifact, proxy_artifact, monkeypatch
):
    monkeypatch.setattr(PassportContract, "implementation_address", lambda self: None)
    with pytest.raises(StateVerificationError):
        Deployer(transactor).deploy_proxy(upgradeable_artifact, proxy_artifact)


def test_deploy_rpc_unavailable(transactor, chain, passport_artifact):
    chain.unavailable_calls = 100
    with pytest.raises(RpcUnavailableError):
        Deployer(transactor).deploy(passport_artifact)
    assert chain.sent == []
