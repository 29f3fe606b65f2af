"""
Exceptions for the publish gate.

Denials are not errors: they come back as a Decision with reason codes.
These exceptions cover genuine faults only, such as a config that would
silently weaken the policy if it were accepted.
"""


class PublishGateError(Exception):
    """Base class for publish gate faults."""


class ConfigError(PublishGateError):
    """Raised when a PolicyConfig is missing fields or holds invalid values."""
