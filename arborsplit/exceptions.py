"""
Error kinds raised while classifying a neuron.
"""


class ArborSplitError(Exception):
    """Base for all domain errors."""


class MalformedTreeError(ArborSplitError):
    """Skeleton is not a single rooted tree (multiple roots, cycle, dangling parent)."""


class NoSynapseDataError(ArborSplitError):
    """Neuron has no input or no output synapses."""


class ConfigError(ArborSplitError):
    """Invalid or missing configuration."""


class SWCParseError(ArborSplitError):
    """SWC file unreadable or invalid."""
