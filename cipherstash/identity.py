import pulumi
import pulumi_aws as aws
from .errors import IdentityResolutionError


class Principal:
    """An identity that can be granted permissions on a key."""

    identifier = None

    def arn(self, account_id):
        raise NotImplementedError

    def __eq__(self, other):
        return type(other) is type(self) and self.identifier == other.identifier

    def __hash__(self):
        return hash((type(self), self.identifier))

    def __repr__(self):
        return f"{self.__class__.__name__}({self.identifier!r})"


class AccountRootPrincipal(Principal):
    # The account is only known once a key is attached to a stack.
    identifier = "root"

    def arn(self, account_id):
        return f"arn:aws:iam::{account_id}:root"


class ArnPrincipal(Principal):
    def __init__(self, arn):
        self.identifier = arn

    def arn(self, account_id):
        return self.identifier


class KeyManagers:
    def __init__(self, principals=()):
        """Principals allowed to administer keys. Account root is always first."""
        self.principals = [AccountRootPrincipal()]
        for principal in principals:
            self.add(principal)

    def add(self, principal):
        if principal not in self.principals:
            self.principals.append(principal)
        return self

    def arns(self, account_id):
        """Render principals as ARNs for a key living in `account_id`.

        An explicit ARN may render like the account root (deploying as
        root), it is only listed once.
        """
        arns = []
        for principal in self.principals:
            arn = principal.arn(account_id)
            if arn not in arns:
                arns.append(arn)
        return arns

    def __iter__(self):
        return iter(self.principals)

    def __len__(self):
        return len(self.principals)

    def __contains__(self, principal):
        return principal in self.principals


def key_managers(*arns):
    """Build the key managers for a deployment from a list of ARNs."""
    return KeyManagers(ArnPrincipal(arn) for arn in arns)


# Errors worth a second attempt. Anything else (bad credentials, denied
# access, errors reported by the provider) is fatal right away.
TRANSIENT_ERRORS = (ConnectionError, TimeoutError)


def resolve_caller(lookup=aws.get_caller_identity, retries=1):
    """Return the principal running the deployment.

    `lookup` is called without arguments and must return an object with an
    `arn` attribute. A lookup raising one of `TRANSIENT_ERRORS` is retried
    at most `retries` times. Any other failure, or a lookup returning no
    ARN, is fatal right away.
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            identity = lookup()
            break
        except TRANSIENT_ERRORS as exc:
            if attempt > retries:
                raise IdentityResolutionError(
                    f"Unable to resolve caller identity: {exc}"
                ) from exc
            pulumi.log.warn(
                f"Caller identity lookup failed (attempt {attempt}), retrying: {exc}"
            )
        except Exception as exc:
            raise IdentityResolutionError(
                f"Unable to resolve caller identity: {exc}"
            ) from exc
    arn = getattr(identity, "arn", None)
    if not arn:
        raise IdentityResolutionError("Invalid identity response: missing caller ARN.")
    pulumi.log.info(f"Deploying as {arn}")
    return ArnPrincipal(arn)
