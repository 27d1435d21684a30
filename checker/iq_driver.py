#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from pathlib import Path
from typing import Dict, Optional

from iq_analysis import InferenceResult
from iq_ast import CompilationUnitNode
from iq_context import CheckerContext
from iq_diagnostics import Diagnostic
from iq_expr_types import ExpressionTyper
from iq_factory import AnnotatedTypeFactory
from iq_interning import InterningChecker
from iq_loader import UnitFormatError, load_unit
from iq_logger import log_debug, log_info, log_stage
from iq_qualifiers import Qualifier, parse_qualifier_name
from iq_resolve import NameBinder


class QualifierDriver:
    """
    Runs qualifier inference over one compilation unit:

      1. NameBinder (names -> declarations, declared base types)
      2. ExpressionTyper (base type of every expression)
      3. AnnotatedTypeFactory with the interning plugin (qualifiers)

    A fresh plugin and factory are built for every unit. Internal checker
    errors are not caught: they abort the unit.
    """

    def __init__(self, context: Optional[CheckerContext] = None):
        self.context = context or CheckerContext.default()

    def make_checker(self) -> InterningChecker:
        extra: Dict[str, Qualifier] = {
            spelling: parse_qualifier_name(name) for spelling, name in self.context.extra_aliases.items()
        }
        return InterningChecker(extra_aliases=extra)

    def analyze_file(self, path: Path) -> InferenceResult:
        """Load a unit from a JSON document and analyze it."""
        log_info(self.context, f"Loading unit from '{path}'")
        try:
            unit = load_unit(path)
        except OSError as e:
            result = InferenceResult(context=self.context)
            result.diagnostics.append(Diagnostic(kind="error", message=f"file: [DRV-0010] {e}"))
            return result
        except UnitFormatError as e:
            result = InferenceResult(context=self.context)
            result.diagnostics.append(Diagnostic(kind="error", message=f"input: [DRV-0020] {e}"))
            return result
        return self.analyze(unit)

    def analyze(self, unit: CompilationUnitNode) -> InferenceResult:
        log_info(self.context, f"Starting qualifier inference for unit '{unit.name}'")
        result = InferenceResult(unit=unit, context=self.context)

        log_stage(self.context, "Binding names", unit.name)
        binding = NameBinder(unit).bind()
        result.diagnostics.extend(binding.diagnostics)
        log_debug(self.context, f"Name binding found {len(binding.classes)} class(es), {len(binding.bindings)} name use(s)")

        log_stage(self.context, "Typing expressions", unit.name)
        typing = ExpressionTyper(unit, binding, self.context).check()
        result.diagnostics.extend(typing.diagnostics)
        result.base_types = typing.expr_types
        log_debug(self.context, f"Typed {len(typing.expr_types)} expression(s), {len(typing.unboxed)} unboxing conversion(s)")

        log_stage(self.context, "Inferring qualifiers", unit.name)
        factory = AnnotatedTypeFactory(self.make_checker(), unit, binding, typing, self.context)
        factory.post_init()
        factory.annotate_unit()
        result.diagnostics.extend(factory.diagnostics)
        result.expr_types = factory.expr_types
        result.decl_types = factory.decl_types
        result.unboxed = factory.unboxed

        log_info(
            self.context,
            f"Inferred {len(result.decl_types)} declaration type(s) and {len(result.expr_types)} expression type(s)",
        )
        return result
