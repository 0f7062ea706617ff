"""Shared fixtures for the gateway tests."""

import pytest

from fakes import FakeStore, follow, place, post, profile


@pytest.fixture
def tables():
    return {
        "profiles": [
            profile("u-ann", "ann", "Ann Lee"),
            profile("u-bob", "bob", "Annie Bob"),
            profile("u-joanna", "joanna", "Jo"),
            profile("u-carl", "carl", "Carl"),
            profile("u-dana", "dana_100", "Dana"),
        ],
        "places": [
            place("pl-ichi", "Ichiran Shibuya", "Shibuya, Tokyo"),
            place("pl-afuri", "AFURI Ebisu", "Ebisu, Tokyo"),
        ],
        "posts": [
            post("p1", "u-ann", 1, "pl-ichi"),
            post("p2", "u-bob", 2, "pl-ichi"),
            post("p3", "u-carl", 3, "pl-afuri"),
            post("p4", "u-ann", 4, "pl-missing"),
            post("p5", "u-bob", 5),
            post("p6", "u-dana", 6, "pl-afuri"),
        ],
        "follows": [
            follow("u-ann", "u-bob", 10),
            follow("u-ann", "u-carl", 11, status="pending"),
            follow("u-carl", "u-ann", 12),
            follow("u-dana", "u-ann", 13),
            follow("u-joanna", "u-ann", 14, status="pending"),
        ],
    }


@pytest.fixture
def store(tables):
    return FakeStore(tables)
