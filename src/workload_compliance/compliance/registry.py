"""Rule registry: the ordered set of rules an engine evaluates.

The registry is the only component allowed to fail at setup time. Rule names
are unique; registering a name twice raises DuplicateRuleError and leaves the
registry exactly as it was before the call.

Registration order is significant: it fixes the order of RuleResults in every
ComplianceReport produced from this registry.
"""

import threading
from collections.abc import Iterable, Iterator

from workload_compliance.compliance.rules import (
    DEFAULT_TRUSTED_REGISTRIES,
    Rule,
    build_baseline_rules,
)
from workload_compliance.errors import DuplicateRuleError
from workload_compliance.observability import get_logger

logger = get_logger(__name__)


class RuleRegistry:
    """Ordered, name-unique collection of rules.

    Registration is serialized with a lock so concurrent setup code cannot
    interleave a duplicate check with an insert. Every read takes the same
    lock, and bulk reads return immutable snapshots.

    Args:
        rules: Optional initial rules, registered atomically in order.
    """

    def __init__(self, rules: Iterable[Rule] | None = None) -> None:
        """Initialize the registry.

        Args:
            rules: Rules to register immediately.

        Raises:
            DuplicateRuleError: If the initial rules contain a repeated name.
        """
        self._rules: dict[str, Rule] = {}
        self._lock = threading.Lock()
        if rules is not None:
            self.register_all(rules)

    def register(self, rule: Rule) -> None:
        """Add a rule to the end of the registry.

        Args:
            rule: The rule to register.

        Raises:
            DuplicateRuleError: If a rule with the same name is already registered.
        """
        with self._lock:
            if rule.name in self._rules:
                raise DuplicateRuleError(rule.name)
            self._rules[rule.name] = rule
            total = len(self._rules)

        logger.debug("Rule registered", rule=rule.name, total=total)

    def register_all(self, rules: Iterable[Rule]) -> None:
        """Register several rules atomically.

        Either every rule is added (in the given order) or, when any name
        collides with the registry or with another rule in the batch, none is.

        Args:
            rules: Rules to register.

        Raises:
            DuplicateRuleError: On the first colliding name.
        """
        batch = list(rules)
        with self._lock:
            seen: set[str] = set(self._rules)
            for rule in batch:
                if rule.name in seen:
                    raise DuplicateRuleError(rule.name)
                seen.add(rule.name)
            for rule in batch:
                self._rules[rule.name] = rule
            total = len(self._rules)

        logger.debug("Rules registered", count=len(batch), total=total)

    def rules(self) -> tuple[Rule, ...]:
        """Return the registered rules in registration order."""
        with self._lock:
            return tuple(self._rules.values())

    def names(self) -> tuple[str, ...]:
        """Return the registered rule names in registration order."""
        with self._lock:
            return tuple(self._rules)

    def get(self, name: str) -> Rule | None:
        """Return the rule registered under name, or None."""
        with self._lock:
            return self._rules.get(name)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._rules

    def __len__(self) -> int:
        with self._lock:
            return len(self._rules)

    def __iter__(self) -> Iterator[Rule]:
        return iter(self.rules())


def create_baseline_registry(
    trusted_registries: Iterable[str] = DEFAULT_TRUSTED_REGISTRIES,
) -> RuleRegistry:
    """Create a registry holding the ten baseline rules.

    Args:
        trusted_registries: Registry host patterns accepted by image_security.

    Returns:
        A RuleRegistry pre-populated in canonical order.
    """
    return RuleRegistry(build_baseline_rules(trusted_registries))
