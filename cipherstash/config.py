import os
import pulumi
from .errors import ConfigurationError

TOKEN_PROVIDERS = ("auth0", "okta")


def get_env_var(name, environ=None):
    """Return a required environment variable."""
    if environ is None:
        environ = os.environ
    value = environ.get(name)
    if not value:
        raise ConfigurationError(f"Required environment variable {name} not set.")
    return value


class Settings:
    def __init__(self, environ=None, config=None):
        """Settings for one deployment.

        Required values come from the environment and are checked before
        any lookup or resource is made. Optional knobs come from the stack
        configuration (`cipherstash:*`).
        """
        self.cts_account_id = get_env_var("CTS_ACCOUNT_ID", environ)
        self.zerokms_account_id = get_env_var("ZEROKMS_ACCOUNT_ID", environ)
        self.region = get_env_var("AWS_REGION", environ)
        self.cts_zone_name = get_env_var("CTS_ROUTE53_ZONE_NAME", environ)
        self.zerokms_zone_name = get_env_var("ZEROKMS_ROUTE53_ZONE_NAME", environ)
        self.cts_token_issuer = get_env_var("CTS_TOKEN_ISSUER", environ)

        if config is None:
            config = pulumi.Config("cipherstash")
        self.token_provider = config.get("tokenProvider") or "auth0"
        if self.token_provider not in TOKEN_PROVIDERS:
            raise ConfigurationError(
                f"Unknown token provider {self.token_provider!r}, "
                f"expected one of {', '.join(TOKEN_PROVIDERS)}."
            )
        self.multi_region_key = bool(config.get_bool("multiRegionKey"))
        self.replica_regions = self._list(config, "replicaRegions")
        if self.replica_regions and not self.multi_region_key:
            raise ConfigurationError(
                "Replica regions require cipherstash:multiRegionKey to be enabled."
            )
        if self.region in self.replica_regions:
            raise ConfigurationError(
                f"Replica regions cannot include the primary region {self.region}."
            )
        self.key_manager_arns = self._list(config, "keyManagerArns")
        self.zips_dir = config.get("zipsDir") or "zips"

    @staticmethod
    def _list(config, key):
        value = config.get_object(key) or []
        if not isinstance(value, list) or not all(
            isinstance(v, str) and v for v in value
        ):
            raise ConfigurationError(
                f"cipherstash:{key} must be a list of non-empty strings."
            )
        return value

