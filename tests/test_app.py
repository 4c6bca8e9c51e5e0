import json
import pulumi
import pytest
import cipherstash.app
from cipherstash.app import deploy
from cipherstash.errors import ConfigurationError, IdentityResolutionError

DEPLOYER = "arn:aws:iam::111111111111:user/deployer"


@pytest.fixture
def services(environ, stack_config, identity):
    return deploy(environ, stack_config(), lambda: identity(DEPLOYER))


def test_missing_zone_aborts_before_lookup(environ, stack_config):
    calls = []
    del environ["CTS_ROUTE53_ZONE_NAME"]
    with pytest.raises(ConfigurationError, match="CTS_ROUTE53_ZONE_NAME"):
        deploy(environ, stack_config(), lambda: calls.append(1))
    assert calls == []


def test_missing_arn_aborts_before_key_managers(
    environ, stack_config, identity, monkeypatch
):
    built = []
    monkeypatch.setattr(
        cipherstash.app, "key_managers", lambda *arns: built.append(arns)
    )
    with pytest.raises(IdentityResolutionError):
        deploy(environ, stack_config(), lambda: identity(None))
    assert built == []


@pytest.mark.parametrize("purpose", ["signing", "encryption"])
@pulumi.runtime.test
def test_key_policies(services, purpose):
    cts, zerokms = services
    service = cts if purpose == "signing" else zerokms
    account_id = "111111111111" if purpose == "signing" else "222222222222"
    expected = {
        "signing": ["kms:GetPublicKey", "kms:Sign"],
        "encryption": ["kms:GenerateDataKey", "kms:Decrypt", "kms:Encrypt"],
    }[purpose]

    def check(args):
        policy, role_arn = args
        managers, operators = json.loads(policy)["Statement"]
        assert managers["Principal"]["AWS"] == [
            f"arn:aws:iam::{account_id}:root",
            DEPLOYER,
        ]
        assert operators["Principal"]["AWS"] == role_arn
        assert operators["Action"] == expected

    return pulumi.Output.all(service.key.policy, service.role.arn).apply(check)


@pulumi.runtime.test
def test_cts_environment(services):
    cts, _ = services

    def check(environment):
        variables = environment.variables
        assert variables["CTS__AUTH0__TOKEN_AUDIENCES"] == "https://cts.example.com/"
        assert variables["CTS__AUTH0__TOKEN_ISSUER"] == "https://tenant.auth0.com/"
        assert variables["CTS__DATABASE__NAME"] == "cts"
        assert variables["CTS__DATABASE__PORT"] == "5432"
        assert variables["CTS__DATABASE__SSL_MODE"] == "verify-full"
        assert variables["CTS__JWT_SIGNING_KEY_ID"] == "cts-jwt-signing-key-key-id"

    return cts.server.environment.apply(check)


@pulumi.runtime.test
def test_zerokms_trusts_cts(services):
    _, zerokms = services

    def check(environment):
        variables = environment.variables
        assert variables["ZEROKMS__IDP__ISSUERS"] == "https://cts.example.com/"
        assert variables["ZEROKMS__IDP__AUDIENCE"] == "https://zerokms.example.com/"
        assert variables["ZEROKMS__POSTGRES__NAME"] == "zerokms"
        assert (
            variables["ZEROKMS__KEY_PROVIDER__ROOT_KEY_ID"]
            == "zerokms-root-key-key-id"
        )

    return zerokms.migrations.environment.apply(check)


@pulumi.runtime.test
def test_functions(services):
    cts, _ = services

    def check(args):
        server_memory, server_timeout, migrations_memory, migrations_timeout, arch = args
        assert (server_memory, server_timeout) == (3008, 5)
        assert (migrations_memory, migrations_timeout) == (128, 30)
        assert arch == ["arm64"]

    return pulumi.Output.all(
        cts.server.memory_size,
        cts.server.timeout,
        cts.migrations.memory_size,
        cts.migrations.timeout,
        cts.server.architectures,
    ).apply(check)


def test_domains(services):
    cts, zerokms = services
    assert cts.domain_name == "cts.example.com"
    assert cts.url == "https://cts.example.com/"
    assert zerokms.domain_name == "zerokms.example.com"


def test_distinct_zones(environ, stack_config, identity):
    environ["CTS_ROUTE53_ZONE_NAME"] = "cts.example.com"
    environ["ZEROKMS_ROUTE53_ZONE_NAME"] = "kms.example.org"
    cts, zerokms = deploy(environ, stack_config(), lambda: identity(DEPLOYER))
    assert cts.domain_name == "cts.example.com"
    assert zerokms.domain_name == "kms.example.org"
    assert zerokms.issuer == "https://cts.example.com/"


@pulumi.runtime.test
def test_replicas_share_primary_policy(environ, stack_config, identity):
    _, zerokms = deploy(
        environ,
        stack_config(multiRegionKey=True, replicaRegions=["eu-west-1"]),
        lambda: identity(DEPLOYER),
    )
    assert len(zerokms.replicas) == 1

    def check(args):
        primary, replica, multi_region = args
        assert multi_region is True
        assert replica == primary

    return pulumi.Output.all(
        zerokms.key.policy, zerokms.replicas[0].policy, zerokms.key.multi_region
    ).apply(check)


@pulumi.runtime.test
def test_extra_key_managers(environ, stack_config, identity):
    admin = "arn:aws:iam::111111111111:role/admin"
    cts, _ = deploy(
        environ,
        stack_config(keyManagerArns=[admin, DEPLOYER]),
        lambda: identity(DEPLOYER),
    )

    def check(policy):
        managers, _ = json.loads(policy)["Statement"]
        assert managers["Principal"]["AWS"] == [
            "arn:aws:iam::111111111111:root",
            DEPLOYER,
            admin,
        ]

    return cts.key.policy.apply(check)


@pytest.mark.parametrize(
    "cts_zone,zerokms_zone,mode",
    [
        ("example.com", "example.com", "shared"),
        ("cts.example.com", "kms.example.org", "distinct"),
    ],
)
def test_zone_mode_is_logged(
    environ, stack_config, identity, monkeypatch, cts_zone, zerokms_zone, mode
):
    messages = []
    monkeypatch.setattr(pulumi.log, "info", lambda msg, *args, **kwargs: messages.append(msg))
    environ["CTS_ROUTE53_ZONE_NAME"] = cts_zone
    environ["ZEROKMS_ROUTE53_ZONE_NAME"] = zerokms_zone
    deploy(environ, stack_config(), lambda: identity(DEPLOYER))
    assert any(f"Using {mode} zones" in message for message in messages)
