"""Category deficit calculation."""

from typing import Iterable, List

from .models import CategoryDeficit, DeckAnalysis, DeckTemplate


def compute_category_deficits(
    analysis: DeckAnalysis,
    template: DeckTemplate,
    category_names: Iterable[str]
) -> List[CategoryDeficit]:
    """
    Compute how many cards each category is short of its template minimum.

    One result is returned per requested name, in the requested order. A
    category missing from the analysis counts as 0; one missing from the
    template has no bounds and a deficit of 0.

    Args:
        analysis: Deck analysis holding current category counts
        template: Template holding the recommended bounds
        category_names: Categories to compute, in output order

    Returns:
        List of CategoryDeficit, deficit never negative
    """
    deficits = []
    for name in category_names:
        summary = analysis.get_category(name)
        current = summary.count if summary else 0

        config = template.get_category(name)
        minimum = config.min if config else None
        maximum = config.max if config else None

        deficits.append(CategoryDeficit(
            name=name,
            current=current,
            min=minimum,
            max=maximum,
            deficit=max(0, (minimum or 0) - current),
        ))
    return deficits
