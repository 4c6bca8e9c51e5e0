import collections

CTS = "cts"
ZEROKMS = "zerokms"

ServiceZone = collections.namedtuple("ServiceZone", ["label", "zone_name", "domain_name"])
TokenIssuerLink = collections.namedtuple("TokenIssuerLink", ["issuer", "dependent", "url"])


def derive_domains(zones):
    """Decide the domain name of each service from its zone.

    `zones` maps a service label to its Route53 zone name. A zone used by
    several services cannot hand its bare name to all of them, so each of
    them gets `<label>.<zone>`. A zone used by a single service is used
    as is.
    """
    usage = collections.Counter(zones.values())
    services = {}
    for label, zone_name in zones.items():
        if usage[zone_name] > 1:
            domain_name = f"{label}.{zone_name}"
        else:
            domain_name = zone_name
        services[label] = ServiceZone(label, zone_name, domain_name)
    return services


def zone_mode(zones):
    """`shared` when services share a zone, `distinct` otherwise."""
    if len(set(zones.values())) < len(zones):
        return "shared"
    return "distinct"


def issuer_url(domain_name):
    """URL a service presents as token issuer and accepts as audience."""
    if not domain_name:
        raise ValueError("cannot build an issuer URL without a domain name")
    return f"https://{domain_name}/"


def link_issuer(services, issuer, dependent):
    """Make the dependent service trust tokens from the issuer."""
    return TokenIssuerLink(
        issuer, dependent, issuer_url(services[issuer].domain_name)
    )
