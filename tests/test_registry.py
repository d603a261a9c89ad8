"""Tests for RuleRegistry."""

import threading

import pytest

from workload_compliance.compliance.registry import RuleRegistry, create_baseline_registry
from workload_compliance.compliance.rules import FunctionRule, build_baseline_rules
from workload_compliance.errors import ConfigurationError, DuplicateRuleError


def _rule(name: str) -> FunctionRule:
    return FunctionRule(name=name, description=f"{name} rule", check=lambda d: [])


def test_register_preserves_order() -> None:
    """Rules are returned in registration order."""
    registry = RuleRegistry()
    for name in ("c", "a", "b"):
        registry.register(_rule(name))

    assert registry.names() == ("c", "a", "b")
    assert [r.name for r in registry] == ["c", "a", "b"]
    assert len(registry) == 3
    assert "a" in registry
    assert "z" not in registry


def test_register_duplicate_raises_and_leaves_registry_unchanged() -> None:
    """A duplicate name raises DuplicateRuleError and adds nothing."""
    original = _rule("a")
    registry = RuleRegistry([original])

    with pytest.raises(DuplicateRuleError) as exc_info:
        registry.register(_rule("a"))

    assert exc_info.value.rule_name == "a"
    assert isinstance(exc_info.value, ConfigurationError)
    assert registry.names() == ("a",)
    assert registry.get("a") is original


def test_register_all_is_atomic_on_collision_with_existing() -> None:
    """When any rule in a batch collides, none of the batch is registered."""
    registry = RuleRegistry([_rule("a")])

    with pytest.raises(DuplicateRuleError):
        registry.register_all([_rule("b"), _rule("a"), _rule("c")])

    assert registry.names() == ("a",)


def test_register_all_rejects_duplicates_within_batch() -> None:
    registry = RuleRegistry()

    with pytest.raises(DuplicateRuleError):
        registry.register_all([_rule("x"), _rule("x")])

    assert len(registry) == 0


def test_initial_rules_with_duplicate_raise() -> None:
    with pytest.raises(DuplicateRuleError):
        RuleRegistry([_rule("a"), _rule("a")])


def test_get_unknown_rule_returns_none() -> None:
    assert RuleRegistry().get("missing") is None


def test_rules_snapshot_is_not_affected_by_later_registration() -> None:
    """rules() returns an immutable snapshot."""
    registry = RuleRegistry([_rule("a")])
    snapshot = registry.rules()
    registry.register(_rule("b"))

    assert [r.name for r in snapshot] == ["a"]
    assert registry.names() == ("a", "b")


def test_concurrent_duplicate_registration_admits_exactly_one() -> None:
    """Racing registrations of the same name leave exactly one rule."""
    registry = RuleRegistry()
    errors: list[Exception] = []
    barrier = threading.Barrier(8)

    def register() -> None:
        barrier.wait()
        try:
            registry.register(_rule("shared"))
        except DuplicateRuleError as exc:
            errors.append(exc)

    threads = [threading.Thread(target=register) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert registry.names() == ("shared",)
    assert len(errors) == 7


def test_lookups_during_concurrent_registration_are_consistent() -> None:
    """get, membership and len agree with each other while writers are active."""
    registry = RuleRegistry()
    names = [f"rule-{i}" for i in range(200)]
    barrier = threading.Barrier(5)
    mismatches: list[str] = []

    def write(chunk: list[str]) -> None:
        barrier.wait()
        for name in chunk:
            registry.register(_rule(name))

    def read() -> None:
        barrier.wait()
        for name in names:
            rule = registry.get(name)
            if rule is not None and (rule.name != name or name not in registry):
                mismatches.append(name)
            if not 0 <= len(registry) <= len(names):
                mismatches.append(f"len={len(registry)}")

    threads = [threading.Thread(target=write, args=(names[i::4],)) for i in range(4)]
    threads.append(threading.Thread(target=read))
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert mismatches == []
    assert len(registry) == len(names)
    assert all(name in registry for name in names)
    assert all(registry.get(name).name == name for name in names)


def test_create_baseline_registry_holds_ten_rules() -> None:
    registry = create_baseline_registry()
    assert registry.names() == tuple(r.name for r in build_baseline_rules())
    assert len(registry) == 10


def test_baseline_registry_rejects_rule_named_like_baseline() -> None:
    registry = create_baseline_registry()
    with pytest.raises(DuplicateRuleError):
        registry.register(_rule("image_security"))
    assert len(registry) == 10
