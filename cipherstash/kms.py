import json
import pulumi
import pulumi_aws as aws
from .policy import build_key_policy, SIGNING, ENCRYPTION


def key_policy(key_id, managers, role, purpose, account_id, operator_name):
    """Key policy as a JSON output, once the execution role ARN is known."""
    return role.arn.apply(
        lambda arn: json.dumps(
            build_key_policy(
                key_id,
                managers,
                arn,
                purpose,
                account_id,
                operator_name=operator_name,
            )
        )
    )


def signing_key(name, managers, role, account_id, provider):
    """RSA key signing the JWTs issued by CTS."""
    key = aws.kms.Key(
        f"{name}-jwt-signing-key",
        description="RSA key to sign JWTs issued by CTS",
        customer_master_key_spec="RSA_4096",
        key_usage="SIGN_VERIFY",
        enable_key_rotation=False,
        is_enabled=True,
        policy=key_policy(
            f"{name}-jwt-signing-key", managers, role, SIGNING, account_id, "CTS"
        ),
        opts=pulumi.ResourceOptions(provider=provider, protect=True),
    )
    aws.kms.Alias(
        f"{name}-jwt-signing-key",
        name=f"alias/{name}-jwt-signing-key",
        target_key_id=key.key_id,
        opts=pulumi.ResourceOptions(provider=provider),
    )
    return key


def root_key(name, managers, role, account_id, provider, multi_region=False):
    """Symmetric key wrapping ZeroKMS keys."""
    key = aws.kms.Key(
        f"{name}-root-key",
        description="ZeroKMS root key",
        key_usage="ENCRYPT_DECRYPT",
        multi_region=multi_region,
        is_enabled=True,
        policy=key_policy(
            f"{name}-root-key", managers, role, ENCRYPTION, account_id, "ZeroKMS"
        ),
        opts=pulumi.ResourceOptions(provider=provider, protect=True),
    )
    aws.kms.Alias(
        f"{name}-root-key",
        name=f"alias/{name}-root-key",
        target_key_id=key.key_id,
        opts=pulumi.ResourceOptions(provider=provider),
    )
    return key


def replica_key(name, region, primary, managers, role, account_id, provider):
    """Replica of a multi-region root key in another region.

    The policy is built from the same inputs as the primary's one.
    """
    return aws.kms.ReplicaKey(
        f"{name}-root-key-{region}",
        description="ZeroKMS root key replica",
        primary_key_arn=primary.arn,
        policy=key_policy(
            f"{name}-root-key", managers, role, ENCRYPTION, account_id, "ZeroKMS"
        ),
        opts=pulumi.ResourceOptions(provider=provider, protect=True),
    )
