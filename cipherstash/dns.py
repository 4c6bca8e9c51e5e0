import pulumi
import pulumi_aws as aws


class Route53Zone:
    def __init__(self, name, provider):
        """An existing Route53 zone (we look it up, we do not create it)."""
        self.name = name
        self.provider = provider
        self.zone_id = aws.route53.get_zone(
            name=name,
            private_zone=False,
            opts=pulumi.InvokeOptions(provider=provider),
        ).zone_id

    def relative(self, domain):
        """Name of a domain relative to the zone."""
        if domain == self.name:
            return "@"
        return domain.removesuffix(f".{self.name}")

    def record(self, name, rrtype, records=None, ttl=86400, **more):
        """Create a record."""
        if name == "@":
            name = self.name
        else:
            name = f"{name}.{self.name}"
        if type(records) is str:
            records = [records]
        if records is not None:
            more.update(records=records, ttl=ttl)
        return aws.route53.Record(
            f"{rrtype}-{name}",
            zone_id=self.zone_id,
            name=name,
            type=rrtype,
            **more,
            opts=pulumi.ResourceOptions(provider=self.provider),
        )

    def alias(self, domain, target_name, target_zone_id):
        """Create A alias record to a regional endpoint."""
        return self.record(
            self.relative(domain),
            "A",
            aliases=[
                aws.route53.RecordAliasArgs(
                    name=target_name,
                    zone_id=target_zone_id,
                    evaluate_target_health=False,
                )
            ],
        )

    def certificate(self, domain):
        """Request a certificate for a domain and validate it through the zone."""
        opts = pulumi.ResourceOptions(provider=self.provider)
        certificate = aws.acm.Certificate(
            domain,
            domain_name=domain,
            validation_method="DNS",
            opts=opts,
        )
        option = certificate.domain_validation_options.apply(lambda options: options[0])
        record = aws.route53.Record(
            f"CNAME-validation-{domain}",
            zone_id=self.zone_id,
            name=option.apply(lambda o: o.resource_record_name),
            type=option.apply(lambda o: o.resource_record_type),
            records=[option.apply(lambda o: o.resource_record_value)],
            ttl=60,
            allow_overwrite=True,
            opts=opts,
        )
        return aws.acm.CertificateValidation(
            domain,
            certificate_arn=certificate.arn,
            validation_record_fqdns=[record.fqdn],
            opts=opts,
        )
