"""
CDN Selection Layer.

This package probes the candidate CDN hosts, rates them, and picks the one
every later network operation talks to.
"""

from .prober import ProbeResult, probe
from .rating import DEFAULT_PENALTIES, UNREACHABLE, calculate_rating, rate_latency
from .selector import DEFAULT_CDN_HOSTS, ActiveHost, CandidateHost, HostSelector

__all__ = [
    "DEFAULT_CDN_HOSTS",
    "DEFAULT_PENALTIES",
    "UNREACHABLE",
    "ActiveHost",
    "CandidateHost",
    "HostSelector",
    "ProbeResult",
    "calculate_rating",
    "probe",
    "rate_latency",
]
