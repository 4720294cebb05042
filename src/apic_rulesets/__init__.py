"""API Center ruleset deployment."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("apic-rulesets")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"
