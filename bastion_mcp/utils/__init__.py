"""Utilities for Bastion MCP."""

from bastion_mcp.utils.console import ColorfulFormatter, MCPRequestFormatter
from bastion_mcp.utils.output import clean_wide_output, find_failure_marker, judge_output
from bastion_mcp.utils.ping import check_host_online, icmp_ttl, parse_ttl
from bastion_mcp.utils.shell import encode_bash, encode_ps, quote_ps
from bastion_mcp.utils.validation import validate_distro, validate_host

__all__ = [
    "check_host_online",
    "clean_wide_output",
    "ColorfulFormatter",
    "encode_bash",
    "encode_ps",
    "find_failure_marker",
    "icmp_ttl",
    "judge_output",
    "MCPRequestFormatter",
    "parse_ttl",
    "quote_ps",
    "validate_distro",
    "validate_host",
]
