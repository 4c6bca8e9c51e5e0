import pulumi
import pulumi_aws as aws
from .config import Settings
from .domains import CTS, ZEROKMS, derive_domains, link_issuer, zone_mode
from .identity import key_managers, resolve_caller
from .service import Cts, ZeroKms


def provider(name, account_id, region):
    """Provider pinned to an account, so a stack never lands in the wrong one."""
    return aws.Provider(name, region=region, allowed_account_ids=[account_id])


def deploy(environ=None, config=None, lookup=aws.get_caller_identity):
    """Describe both services.

    Nothing is described unless the settings are complete and the caller
    identity is known.
    """
    settings = Settings(environ, config)
    caller = resolve_caller(lookup)
    managers = key_managers(caller.identifier, *settings.key_manager_arns)

    # One zone for both (pre-production) needs subdomains
    zones = {CTS: settings.cts_zone_name, ZEROKMS: settings.zerokms_zone_name}
    services = derive_domains(zones)
    link = link_issuer(services, CTS, ZEROKMS)
    pulumi.log.info(
        f"Using {zone_mode(zones)} zones: CTS at {services[CTS].domain_name}, "
        f"ZeroKMS at {services[ZEROKMS].domain_name}, trusting {link.url}"
    )

    cts = Cts(
        provider("cts", settings.cts_account_id, settings.region),
        settings.cts_account_id,
        managers,
        services[CTS],
        zips_dir=settings.zips_dir,
        token_issuer=settings.cts_token_issuer,
        token_provider=settings.token_provider,
    )
    zerokms = ZeroKms(
        provider("zerokms", settings.zerokms_account_id, settings.region),
        settings.zerokms_account_id,
        managers,
        services[ZEROKMS],
        zips_dir=settings.zips_dir,
        issuer=link.url,
        multi_region=settings.multi_region_key,
        replica_providers={
            region: provider(
                f"zerokms-{region}", settings.zerokms_account_id, region
            )
            for region in settings.replica_regions
        },
    )
    pulumi.export("deployer", caller.identifier)
    return cts, zerokms
