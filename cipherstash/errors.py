class DeploymentError(Exception):
    """Base class for errors aborting a deployment."""


class ConfigurationError(DeploymentError):
    """A required setting is missing or invalid."""


class IdentityResolutionError(DeploymentError):
    """The deploying identity cannot be determined."""


class PolicyConstructionError(DeploymentError):
    """A key policy would not be properly scoped."""
