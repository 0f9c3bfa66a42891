"""YAML helpers for generated workflows."""

from __future__ import annotations

import re
from typing import Any

import yaml


class WorkflowLoader(yaml.SafeLoader):
    """SafeLoader that only treats true/false as booleans and keeps timestamps as strings.

    GitHub reads workflows with YAML 1.2 rules, where ``on:`` is a plain key.
    """


WorkflowLoader.yaml_implicit_resolvers = {
    first: [
        (tag, regexp)
        for tag, regexp in resolvers
        if tag not in {"tag:yaml.org,2002:bool", "tag:yaml.org,2002:timestamp"}
    ]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}
WorkflowLoader.add_implicit_resolver(
    "tag:yaml.org,2002:bool",
    re.compile(r"^(?:true|True|TRUE|false|False|FALSE)$"),
    list("tTfF"),
)


def load_workflow(text: str) -> Any:
    """Parse workflow YAML into plain JSON-compatible structures."""
    return yaml.load(text, Loader=WorkflowLoader)  # noqa: S506 - SafeLoader subclass
