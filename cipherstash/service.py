import json
import pulumi
import pulumi_aws as aws
from .dns import Route53Zone
from .domains import CTS, ZEROKMS, issuer_url
from .kms import signing_key, root_key, replica_key
from .network import Network

LAMBDA_MANAGED_POLICIES = [
    "arn:aws:iam::aws:policy/service-role/AWSLambdaBasicExecutionRole",
    "arn:aws:iam::aws:policy/service-role/AWSLambdaVPCAccessExecutionRole",
]


class Service:
    """A service: Lambda functions behind an HTTP API, backed by Postgres."""

    name = None
    title = None

    def __init__(self, provider, account_id, managers, zone, zips_dir="zips"):
        self.provider = provider
        self.account_id = account_id
        self.managers = managers
        self.zone_name = zone.zone_name
        self.domain_name = zone.domain_name
        self.url = issuer_url(zone.domain_name)
        self.zips_dir = zips_dir
        self.opts = pulumi.ResourceOptions(provider=provider)

        self.role, attachments = self._role()
        self.bucket = self._bucket()
        self.key = self.make_key()

        self.network = Network(self.name, provider)
        lambda_sg = self.network.security_group(
            "lambda", f"{self.title} Lambda functions"
        )
        rds_sg = self.network.security_group("rds", f"{self.title} database")
        self.network.allow_postgres("rds-from-lambda", rds_sg, lambda_sg)
        self.database, self.secret_arn = self._database(rds_sg)
        aws.iam.RolePolicy(
            f"{self.name}-db-credentials",
            role=self.role.id,
            policy=self.secret_arn.apply(
                lambda arn: json.dumps(
                    {
                        "Version": "2012-10-17",
                        "Statement": [
                            {
                                "Effect": "Allow",
                                "Action": [
                                    "secretsmanager:GetSecretValue",
                                    "secretsmanager:DescribeSecret",
                                ],
                                "Resource": arn,
                            }
                        ],
                    }
                )
            ),
            opts=self.opts,
        )

        environment = self.environment()
        self.server = self._function(
            "server", self.name, 3008, 5, environment, lambda_sg, attachments
        )
        self.migrations = self._function(
            "migrations",
            f"{self.name}-migrations",
            128,
            30,
            environment,
            lambda_sg,
            attachments,
        )
        self.api = self._api()

        pulumi.export(f"{self.name}-api-url", self.url)
        pulumi.export(f"{self.name}-migration-function", self.migrations.name)

    def make_key(self):
        raise NotImplementedError

    def environment(self):
        raise NotImplementedError

    def database_environment(self, prefix):
        """Variables telling a function how to reach the database."""
        return {
            f"{prefix}__CREDS_SECRET_ARN": self.secret_arn,
            f"{prefix}__HOST": self.database.address,
            f"{prefix}__NAME": self.name,
            f"{prefix}__PORT": self.database.port.apply(str),
            f"{prefix}__SSL_MODE": "verify-full",
        }

    def _role(self):
        role = aws.iam.Role(
            f"{self.name}-lambda-exec",
            assume_role_policy=json.dumps(
                {
                    "Version": "2012-10-17",
                    "Statement": [
                        {
                            "Effect": "Allow",
                            "Principal": {"Service": "lambda.amazonaws.com"},
                            "Action": "sts:AssumeRole",
                        }
                    ],
                }
            ),
            opts=self.opts,
        )
        attachments = [
            aws.iam.RolePolicyAttachment(
                f"{self.name}-lambda-exec-{arn.rsplit('/', 1)[-1]}",
                role=role.name,
                policy_arn=arn,
                opts=self.opts,
            )
            for arn in LAMBDA_MANAGED_POLICIES
        ]
        return role, attachments

    def _bucket(self):
        """Private bucket for the packaged functions."""
        bucket = aws.s3.BucketV2(f"{self.name}-lambda-zips", opts=self.opts)
        aws.s3.BucketPublicAccessBlock(
            f"{self.name}-lambda-zips",
            bucket=bucket.id,
            block_public_acls=True,
            block_public_policy=True,
            ignore_public_acls=True,
            restrict_public_buckets=True,
            opts=self.opts,
        )
        aws.s3.BucketServerSideEncryptionConfigurationV2(
            f"{self.name}-lambda-zips",
            bucket=bucket.id,
            rules=[
                aws.s3.BucketServerSideEncryptionConfigurationV2RuleArgs(
                    apply_server_side_encryption_by_default=aws.s3.BucketServerSideEncryptionConfigurationV2RuleApplyServerSideEncryptionByDefaultArgs(
                        sse_algorithm="AES256",
                    ),
                )
            ],
            opts=self.opts,
        )
        return bucket

    def _database(self, security_group):
        subnets = aws.rds.SubnetGroup(
            f"{self.name}-db",
            subnet_ids=self.network.private_subnet_ids,
            opts=self.opts,
        )
        database = aws.rds.Instance(
            f"{self.name}-db",
            allocated_storage=20,
            engine="postgres",
            engine_version="16.3",
            instance_class="db.t3.micro",
            db_name=self.name,
            username="postgres",
            manage_master_user_password=True,
            db_subnet_group_name=subnets.name,
            vpc_security_group_ids=[security_group.id],
            deletion_protection=False,
            skip_final_snapshot=True,
            opts=self.opts,
        )
        # Credentials are stored in a secret managed by RDS
        secret_arn = database.master_user_secrets.apply(lambda s: s[0].secret_arn)
        return database, secret_arn

    def _function(
        self, kind, artifact, memory_size, timeout, environment, security_group, depends_on
    ):
        """A function running a packaged artifact."""
        code = aws.s3.BucketObjectv2(
            f"{self.name}-{kind}-zip",
            bucket=self.bucket.id,
            key=f"{self.name}-zips/{self.name}-{kind}/{artifact}.zip",
            source=pulumi.FileAsset(f"{self.zips_dir}/{artifact}.zip"),
            opts=self.opts,
        )
        function = aws.lambda_.Function(
            f"{self.name}-{kind}",
            runtime="provided.al2023",
            architectures=["arm64"],
            handler="bootstrap",
            s3_bucket=self.bucket.id,
            s3_key=code.key,
            memory_size=memory_size,
            timeout=timeout,
            role=self.role.arn,
            environment=aws.lambda_.FunctionEnvironmentArgs(variables=environment),
            vpc_config=aws.lambda_.FunctionVpcConfigArgs(
                subnet_ids=self.network.private_subnet_ids,
                security_group_ids=[security_group.id],
            ),
            opts=pulumi.ResourceOptions(
                provider=self.provider, depends_on=depends_on + [code]
            ),
        )
        aws.cloudwatch.LogGroup(
            f"{self.name}-{kind}",
            name=function.name.apply(lambda name: f"/aws/lambda/{name}"),
            retention_in_days=1,
            opts=self.opts,
        )
        return function

    def _api(self):
        """Expose the server function at the service domain name."""
        zone = Route53Zone(self.zone_name, self.provider)
        certificate = zone.certificate(self.domain_name)
        domain = aws.apigatewayv2.DomainName(
            f"{self.name}-domain",
            domain_name=self.domain_name,
            domain_name_configuration=aws.apigatewayv2.DomainNameDomainNameConfigurationArgs(
                certificate_arn=certificate.certificate_arn,
                endpoint_type="REGIONAL",
                security_policy="TLS_1_2",
            ),
            opts=self.opts,
        )
        api = aws.apigatewayv2.Api(
            f"{self.name}-http-api",
            protocol_type="HTTP",
            disable_execute_api_endpoint=True,
            opts=self.opts,
        )
        integration = aws.apigatewayv2.Integration(
            f"{self.name}-lambda",
            api_id=api.id,
            integration_type="AWS_PROXY",
            integration_method="POST",
            integration_uri=self.server.arn,
            payload_format_version="2.0",
            opts=self.opts,
        )
        aws.apigatewayv2.Route(
            f"{self.name}-proxy",
            api_id=api.id,
            route_key="ANY /{proxy+}",
            target=integration.id.apply(lambda id: f"integrations/{id}"),
            opts=self.opts,
        )
        stage = aws.apigatewayv2.Stage(
            f"{self.name}-default",
            api_id=api.id,
            name="$default",
            auto_deploy=True,
            opts=self.opts,
        )
        aws.apigatewayv2.ApiMapping(
            f"{self.name}-mapping",
            api_id=api.id,
            domain_name=domain.id,
            stage=stage.id,
            opts=self.opts,
        )
        aws.lambda_.Permission(
            f"{self.name}-api-invoke",
            action="lambda:InvokeFunction",
            function=self.server.name,
            principal="apigateway.amazonaws.com",
            source_arn=api.execution_arn.apply(lambda arn: f"{arn}/*/*"),
            opts=self.opts,
        )
        configuration = domain.domain_name_configuration
        zone.alias(
            self.domain_name,
            configuration.apply(lambda c: c.target_domain_name),
            configuration.apply(lambda c: c.hosted_zone_id),
        )
        return api


class Cts(Service):
    name = CTS
    title = "CTS"

    def __init__(self, *args, token_issuer, token_provider="auth0", **kwargs):
        """Token-issuing service.

        `token_issuer` is the issuer of the upstream identity provider
        whose tokens CTS exchanges.
        """
        self.token_issuer = token_issuer
        self.token_provider = token_provider
        super().__init__(*args, **kwargs)

    def make_key(self):
        return signing_key(
            self.name, self.managers, self.role, self.account_id, self.provider
        )

    def environment(self):
        idp = self.token_provider.upper()
        return {
            f"CTS__{idp}__TOKEN_AUDIENCES": self.url,
            f"CTS__{idp}__TOKEN_ISSUER": self.token_issuer,
            **self.database_environment("CTS__DATABASE"),
            "CTS__JWT_SIGNING_KEY_ID": self.key.key_id,
            "CTS__TRACING_ENABLED": "false",
            "CTS__META_ENDPOINTS_ENABLED": "true",
            "CTS__LOGGING_ENDPOINTS": "",
        }


class ZeroKms(Service):
    name = ZEROKMS
    title = "ZeroKMS"

    def __init__(
        self, *args, issuer, multi_region=False, replica_providers=(), **kwargs
    ):
        """Key-management service trusting tokens from `issuer`.

        `replica_providers` maps regions to the providers used to replicate
        the root key there. Replication needs a multi-region key.
        """
        self.issuer = issuer
        self.multi_region = multi_region
        self.replica_providers = dict(replica_providers)
        super().__init__(*args, **kwargs)

    def make_key(self):
        key = root_key(
            self.name,
            self.managers,
            self.role,
            self.account_id,
            self.provider,
            multi_region=self.multi_region,
        )
        self.replicas = [
            replica_key(
                self.name, region, key, self.managers, self.role, self.account_id, provider
            )
            for region, provider in self.replica_providers.items()
        ]
        if self.multi_region:
            pulumi.export(f"{self.name}-root-key-arn", key.arn)
        return key

    def environment(self):
        return {
            "ZEROKMS__IDP__AUDIENCE": self.url,
            "ZEROKMS__IDP__ISSUERS": self.issuer,
            "ZEROKMS__KEY_PROVIDER__ROOT_KEY_ID": self.key.key_id,
            "ZEROKMS__TRACING_ENABLED": "false",
            **self.database_environment("ZEROKMS__POSTGRES"),
        }
