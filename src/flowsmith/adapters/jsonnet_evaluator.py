"""Jsonnet evaluator adapter."""

from __future__ import annotations

from typing import Sequence

import _jsonnet

from flowsmith.ports.evaluator import EvaluationError, Evaluator


class JsonnetEvaluator(Evaluator):
    template_extension = ".jsonnet"
    library_extension = ".libsonnet"

    def __init__(self, *, max_stack: int = 500) -> None:
        self._max_stack = max_stack

    def evaluate(self, source_text: str, source_path: str, search_paths: Sequence[str]) -> str:
        # a fresh VM per call, so nothing leaks between templates
        try:
            return _jsonnet.evaluate_snippet(
                source_path,
                source_text,
                jpathdir=list(search_paths),
                max_stack=self._max_stack,
            )
        except RuntimeError as exc:
            raise EvaluationError(str(exc).strip(" \n\r")) from exc
