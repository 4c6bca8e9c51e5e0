import ipaddress
import pulumi
import pulumi_aws as aws

POSTGRES_PORT = 5432


class Network:
    def __init__(self, name, provider, cidr="10.0.0.0/16", max_azs=2):
        """VPC with a public and a private subnet in each AZ.

        Private subnets reach the Internet through a NAT gateway living in
        the public subnet of the same AZ.
        """
        self.name = name
        self.provider = provider
        opts = pulumi.ResourceOptions(provider=provider)
        azs = aws.get_availability_zones(
            state="available", opts=pulumi.InvokeOptions(provider=provider)
        ).names[:max_azs]
        subnets = ipaddress.ip_network(cidr).subnets(new_prefix=24)

        self.vpc = aws.ec2.Vpc(
            f"{name}-vpc",
            cidr_block=cidr,
            enable_dns_hostnames=True,
            enable_dns_support=True,
            tags={"Name": f"{name}-vpc"},
            opts=opts,
        )
        igw = aws.ec2.InternetGateway(f"{name}-igw", vpc_id=self.vpc.id, opts=opts)
        public_rt = aws.ec2.RouteTable(
            f"{name}-public",
            vpc_id=self.vpc.id,
            routes=[
                aws.ec2.RouteTableRouteArgs(cidr_block="0.0.0.0/0", gateway_id=igw.id)
            ],
            opts=opts,
        )

        self.public_subnet_ids = []
        self.private_subnet_ids = []
        for az in azs:
            public = aws.ec2.Subnet(
                f"{name}-public-{az}",
                vpc_id=self.vpc.id,
                availability_zone=az,
                cidr_block=str(next(subnets)),
                map_public_ip_on_launch=True,
                tags={"Name": f"{name}-public-{az}"},
                opts=opts,
            )
            aws.ec2.RouteTableAssociation(
                f"{name}-public-{az}",
                subnet_id=public.id,
                route_table_id=public_rt.id,
                opts=opts,
            )
            eip = aws.ec2.Eip(f"{name}-nat-{az}", domain="vpc", opts=opts)
            nat = aws.ec2.NatGateway(
                f"{name}-nat-{az}",
                allocation_id=eip.id,
                subnet_id=public.id,
                opts=pulumi.ResourceOptions(provider=provider, depends_on=[igw]),
            )
            private = aws.ec2.Subnet(
                f"{name}-private-{az}",
                vpc_id=self.vpc.id,
                availability_zone=az,
                cidr_block=str(next(subnets)),
                tags={"Name": f"{name}-private-{az}"},
                opts=opts,
            )
            private_rt = aws.ec2.RouteTable(
                f"{name}-private-{az}",
                vpc_id=self.vpc.id,
                routes=[
                    aws.ec2.RouteTableRouteArgs(
                        cidr_block="0.0.0.0/0", nat_gateway_id=nat.id
                    )
                ],
                opts=opts,
            )
            aws.ec2.RouteTableAssociation(
                f"{name}-private-{az}",
                subnet_id=private.id,
                route_table_id=private_rt.id,
                opts=opts,
            )
            self.public_subnet_ids.append(public.id)
            self.private_subnet_ids.append(private.id)

    def security_group(self, name, description):
        """Security group allowing all outbound traffic."""
        return aws.ec2.SecurityGroup(
            f"{self.name}-{name}",
            description=description,
            vpc_id=self.vpc.id,
            egress=[
                aws.ec2.SecurityGroupEgressArgs(
                    protocol="-1",
                    from_port=0,
                    to_port=0,
                    cidr_blocks=["0.0.0.0/0"],
                    ipv6_cidr_blocks=["::/0"],
                )
            ],
            opts=pulumi.ResourceOptions(provider=self.provider),
        )

    def allow_postgres(self, name, target, source):
        """Allow Postgres traffic from a security group to another."""
        return aws.ec2.SecurityGroupRule(
            f"{self.name}-{name}",
            type="ingress",
            description="Allow inbound Postgres traffic from Lambda.",
            security_group_id=target.id,
            source_security_group_id=source.id,
            protocol="tcp",
            from_port=POSTGRES_PORT,
            to_port=POSTGRES_PORT,
            opts=pulumi.ResourceOptions(provider=self.provider),
        )
