"""Resource offers, offer filters and the known-hosts environment."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Resource:
    """A named scalar resource in an offer."""

    name: str
    value: float


@dataclass(frozen=True)
class Attribute:
    """A named text attribute of the offering host."""

    name: str
    text: str = ""


@dataclass
class Offer:
    """A resource offer from one agent."""

    id: str
    hostname: str
    slave_id: str
    resources: list[Resource] = field(default_factory=list)
    attributes: list[Attribute] = field(default_factory=list)


@dataclass(frozen=True)
class Filters:
    """How long the master should hold back a declined offer's resources."""

    refuse_seconds: float


DEFAULT_FILTER = Filters(refuse_seconds=1.0)
LONG_FILTER = Filters(refuse_seconds=1000.0)


def offer_agg(offer: Offer) -> tuple[float, float, float]:
    """Total cpus, mem and watts in the offer."""
    totals = {"cpus": 0.0, "mem": 0.0, "watts": 0.0}
    for resource in offer.resources:
        if resource.name in totals:
            totals[resource.name] += resource.value
    return totals["cpus"], totals["mem"], totals["watts"]


def power_class(offer: Offer) -> str:
    """The power class the offering host advertises, or '' if none."""
    result = ""
    for attribute in offer.attributes:
        if attribute.name == "class":
            result = attribute.text
    return result


def host_mismatch(offer_host: str, task_host: str) -> bool:
    """True when the task asks for a host that the offer's host does not start with."""
    return bool(task_host) and not offer_host.startswith(task_host)


def sort_offers_by_cpu(offers: Iterable[Offer]) -> list[Offer]:
    """Offers in non-decreasing order of available cpus."""
    return sorted(offers, key=lambda offer: offer_agg(offer)[0])


@dataclass
class Environment:
    """The hosts seen so far and the power class each belongs to."""

    hosts: set[str] = field(default_factory=set)
    power_classes: dict[str, set[str]] = field(default_factory=dict)

    def update(self, offer: Offer) -> bool:
        """Register the offer's host if new; return whether it was new."""
        host = offer.hostname
        if host in self.hosts:
            return False
        logger.info("New host detected: host=%s", host)
        self.hosts.add(host)
        cls = power_class(offer)
        logger.info("Registering the power class... host=%s PowerClass=%s", host, cls)
        self.power_classes.setdefault(cls, set()).add(host)
        return True

    def power_class_of(self, hostname: str) -> str:
        """The power class of ``hostname``, or '' if it is unknown."""
        for cls, hosts in self.power_classes.items():
            if hostname in hosts:
                return cls
        return ""