"""
Errors raised by cryft-cli commands.

Every error is terminal for the current invocation. The command runner prints the message and exits
with a non-zero status; nothing is retried.
"""


class CryftCLIError(Exception):
    """Base class for all errors surfaced to the operator."""


class InvalidName(CryftCLIError):
    def __init__(self, name: str = ""):
        self.name = name
        super().__init__(
            f"subnet name {name!r} is invalid: illegal name character: only letters, "
            "no special characters allowed"
        )


class InvalidWeight(CryftCLIError):
    pass


class TooSoon(CryftCLIError):
    pass


class ParseError(CryftCLIError):
    pass


class NoSubnetID(CryftCLIError):
    def __init__(self, subnet_name: str = "", network: str = ""):
        self.subnet_name = subnet_name
        self.network = network
        super().__init__(
            "failed to find the subnet ID for this subnet, has it been deployed/created on this network?"
        )


class NodeNotFound(CryftCLIError):
    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(f"nodeID not found in validator set: {node_id}")


class TransportError(CryftCLIError):
    pass


class TransportTimeout(TransportError):
    pass


class SubmissionError(CryftCLIError):
    pass


class UnsupportedNetwork(CryftCLIError):
    pass


class SidecarNotFound(CryftCLIError):
    pass


class ConfigurationExists(CryftCLIError):
    pass


class TooManyVMs(CryftCLIError):
    pass


class KeyNotFound(CryftCLIError):
    pass
