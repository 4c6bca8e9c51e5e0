from .errors import PolicyConstructionError

SIGNING = "signing"
ENCRYPTION = "encryption"

MANAGER_ACTIONS = [
    "kms:Create*",
    "kms:Describe*",
    "kms:Enable*",
    "kms:List*",
    "kms:Put*",
    "kms:Update*",
    "kms:Revoke*",
    "kms:Disable*",
    "kms:Get*",
    "kms:Delete*",
    "kms:TagResource",
    "kms:UntagResource",
    "kms:ScheduleKeyDeletion",
    "kms:CancelKeyDeletion",
]

# Extra administrative actions, per purpose
EXTRA_MANAGER_ACTIONS = {
    SIGNING: [],
    ENCRYPTION: ["kms:RotateKeyOnDemand"],
}

OPERATOR_ACTIONS = {
    SIGNING: ["kms:GetPublicKey", "kms:Sign"],
    ENCRYPTION: ["kms:GenerateDataKey", "kms:Decrypt", "kms:Encrypt"],
}


def manager_actions(purpose):
    return MANAGER_ACTIONS + EXTRA_MANAGER_ACTIONS[purpose]


def operator_actions(purpose):
    actions = OPERATOR_ACTIONS[purpose]
    administrative = set(manager_actions(purpose)) & set(actions)
    if administrative:
        raise PolicyConstructionError(
            f"operator actions include administrative actions: {sorted(administrative)}"
        )
    return list(actions)


def build_key_policy(
    key_id, managers, operator, purpose, account_id, operator_name="the service"
):
    """Build a least-privilege policy for a KMS key.

    `managers` get full administration of the key, `operator` (the ARN of
    the service execution role) may only use it for its `purpose`. The key
    ARN is not known while the policy is written, so both statements apply
    to `*`, which in a key policy means the key itself.
    """
    if purpose not in OPERATOR_ACTIONS:
        raise PolicyConstructionError(f"unknown key purpose {purpose!r}")
    if not account_id:
        raise PolicyConstructionError(f"no account given for key {key_id}")
    if managers is None or not len(managers):
        raise PolicyConstructionError(f"no key manager for key {key_id}")
    if not operator:
        raise PolicyConstructionError(f"no operator principal for key {key_id}")
    manager_arns = managers.arns(account_id)
    if not all(manager_arns):
        raise PolicyConstructionError(f"undefined key manager for key {key_id}")
    return {
        "Version": "2012-10-17",
        "Id": key_id,
        "Statement": [
            {
                "Sid": "Key Managers",
                "Effect": "Allow",
                "Principal": {"AWS": manager_arns},
                "Action": manager_actions(purpose),
                "Resource": "*",
            },
            {
                "Sid": f"Allow {operator_name} to work with the key",
                "Effect": "Allow",
                "Principal": {"AWS": operator},
                "Action": operator_actions(purpose),
                "Resource": "*",
            },
        ],
    }
