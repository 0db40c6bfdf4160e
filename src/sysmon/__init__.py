"""sysmon - host monitoring over MCP and REST."""

__version__ = "0.1.0"
