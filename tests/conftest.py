import pulumi
import pytest

ACCOUNT_ID = "123456789012"


class CipherstashMocks(pulumi.runtime.Mocks):
    def new_resource(self, args):
        outputs = dict(args.inputs)
        outputs.setdefault("arn", f"arn:aws:{args.typ}::{ACCOUNT_ID}:{args.name}")
        outputs.setdefault("name", args.name)
        if args.typ == "aws:kms/key:Key":
            outputs["keyId"] = f"{args.name}-key-id"
        elif args.typ == "aws:rds/instance:Instance":
            outputs.update(
                address=f"{args.name}.cluster.rds.amazonaws.com",
                port=5432,
                masterUserSecrets=[
                    {"secretArn": f"arn:aws:secretsmanager:::secret:{args.name}"}
                ],
            )
        elif args.typ == "aws:acm/certificate:Certificate":
            outputs["domainValidationOptions"] = [
                {
                    "domainName": args.inputs["domainName"],
                    "resourceRecordName": f"_check.{args.inputs['domainName']}.",
                    "resourceRecordType": "CNAME",
                    "resourceRecordValue": "_check.acm-validations.aws.",
                }
            ]
        elif args.typ == "aws:apigatewayv2/domainName:DomainName":
            outputs["domainNameConfiguration"] = {
                **args.inputs["domainNameConfiguration"],
                "targetDomainName": "d-abcdef.execute-api.us-east-1.amazonaws.com",
                "hostedZoneId": "Z1UJRXOUMOOFQ8",
            }
        elif args.typ == "aws:route53/record:Record":
            outputs["fqdn"] = args.inputs.get("name")
        elif args.typ == "aws:apigatewayv2/api:Api":
            outputs["executionArn"] = f"arn:aws:execute-api:us-east-1:{ACCOUNT_ID}:api"
        return [f"{args.name}-id", outputs]

    def call(self, args):
        if args.token == "aws:index/getAvailabilityZones:getAvailabilityZones":
            return {"names": ["us-east-1a", "us-east-1b", "us-east-1c"]}
        if args.token == "aws:route53/getZone:getZone":
            return {"zoneId": "Z0123456789", "name": args.args.get("name")}
        return {}


pulumi.runtime.set_mocks(CipherstashMocks(), preview=False)


class StackConfig:
    """Stand-in for `pulumi.Config` holding plain values."""

    def __init__(self, **values):
        self.values = values

    def get(self, key):
        return self.values.get(key)

    def get_bool(self, key):
        return self.values.get(key)

    def get_object(self, key):
        return self.values.get(key)


class Identity:
    def __init__(self, arn):
        self.arn = arn
        self.account_id = ACCOUNT_ID


@pytest.fixture
def environ():
    return {
        "CTS_ACCOUNT_ID": "111111111111",
        "ZEROKMS_ACCOUNT_ID": "222222222222",
        "AWS_REGION": "us-east-1",
        "CTS_ROUTE53_ZONE_NAME": "example.com",
        "ZEROKMS_ROUTE53_ZONE_NAME": "example.com",
        "CTS_TOKEN_ISSUER": "https://tenant.auth0.com/",
    }


@pytest.fixture
def stack_config():
    return StackConfig


@pytest.fixture
def identity():
    return Identity
