import pulumi
from cipherstash.network import Network, POSTGRES_PORT


@pulumi.runtime.test
def test_network():
    network = Network("test", None)
    assert len(network.public_subnet_ids) == 2
    assert len(network.private_subnet_ids) == 2

    lambda_sg = network.security_group("lambda", "Lambda functions")
    rds_sg = network.security_group("rds", "database")
    rule = network.allow_postgres("rds-from-lambda", rds_sg, lambda_sg)

    def check(args):
        cidr, from_port, to_port, source, target = args
        assert cidr == "10.0.0.0/16"
        assert from_port == to_port == POSTGRES_PORT
        assert source == "test-lambda-id"
        assert target == "test-rds-id"

    return pulumi.Output.all(
        network.vpc.cidr_block,
        rule.from_port,
        rule.to_port,
        rule.source_security_group_id,
        rule.security_group_id,
    ).apply(check)
