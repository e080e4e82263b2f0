"""Decide which output parameters need manual review."""

from ..config import ConverterConfig, get_config
from ..models import Entity, ParameterReview
from .mapper import MappedEntity

NO_MAPPING = "no mapping for type {type}"
MAPPING_FAILED = "mapping failed for type {type}: {error}"
UNTRANSLATED_EXPRESSION = "expression could not be mechanically translated"
UNEVALUATED_EXPRESSION = "expression not translated (expression evaluation disabled)"
CODE_PARAMETER = "code parameter semantics may differ between platforms"
CREDENTIALS = "credentials must be reconnected on the target platform"
AMBIGUOUS_UPSTREAM = "$json resolved against first of several upstream entities"


def encode_review(review: ParameterReview) -> str:
    """``"<nodeId> - <p1, p2>: <reason>"``."""
    return review.encode()


def decode_review(text: str) -> ParameterReview:
    """Inverse of ``encode_review`` for well-formed strings.

    Well-formed means the node id contains neither ``" - "`` nor ``": "``
    and parameter names contain neither ``", "`` nor ``": "``. Malformed
    strings still decode, to an ``unknown`` entry carrying the text.
    """
    return ParameterReview.decode(text)


class ReviewFlagger:
    """Builds review entries for one mapped entity.

    A placeholder gets exactly one entry covering ``all`` parameters.
    Other entities get one entry per untranslated expression path plus one
    entry per high-risk construct.
    """

    def __init__(self, config: ConverterConfig | None = None):
        self.config = config or get_config()

    def flag(self, source: Entity, outcome: MappedEntity) -> list[ParameterReview]:
        node_id = outcome.mapped.id

        if outcome.used_placeholder:
            if outcome.error:
                reason = MAPPING_FAILED.format(type=source.type, error=outcome.error)
            else:
                reason = NO_MAPPING.format(type=source.type)
            return [ParameterReview(node_id=node_id, parameters=["all"], reason=reason)]

        reviews = [
            ParameterReview(node_id=node_id, parameters=[path], reason=UNTRANSLATED_EXPRESSION)
            for path in outcome.untranslated_paths
        ]
        reviews.extend(
            ParameterReview(node_id=node_id, parameters=[path], reason=UNEVALUATED_EXPRESSION)
            for path in outcome.unevaluated_paths
        )

        code_parameters = [
            target
            for name, target in outcome.key_map.items()
            if self.config.is_high_risk(name) or self.config.is_high_risk(target)
        ]
        if code_parameters:
            reviews.append(ParameterReview(node_id=node_id, parameters=code_parameters, reason=CODE_PARAMETER))

        if outcome.credential_paths:
            reviews.append(ParameterReview(
                node_id=node_id,
                parameters=list(outcome.credential_paths),
                reason=CREDENTIALS,
            ))

        if outcome.ambiguous_paths:
            reviews.append(ParameterReview(
                node_id=node_id,
                parameters=list(outcome.ambiguous_paths),
                reason=AMBIGUOUS_UPSTREAM,
            ))

        return reviews
