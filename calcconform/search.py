# ==============================================
# Shutter Search
# ==============================================
#
# PURPOSE:
#   Find shutters by free text. The query is split into lowercase
#   keywords; a shutter matches when EVERY keyword appears as a substring
#   of its haystack:
#
#     shutter name + zone name + building name + project name
#     + project city + shutter remarks          (lowercased, space-joined)
#
#   Results keep traversal order (project → building → zone → shutter).
#   This is a full scan of the tree, sized for hundreds of shutters.
#
# ==============================================

from typing import Iterable, List

from calcconform.model.entities import Building, FunctionalZone, Project, SearchResult, Shutter


def tokenize(query: str) -> List[str]:
    """Lowercase whitespace-separated keywords, empty tokens dropped."""
    return query.lower().split()


def build_haystack(shutter: Shutter, zone: FunctionalZone, building: Building, project: Project) -> str:
    parts = [
        shutter.name,
        zone.name,
        building.name,
        project.name,
        project.city,
        shutter.remarks,
    ]
    # Missing parts count as empty text
    return " ".join(str(part or "") for part in parts).lower()


def search_shutters(projects: Iterable[Project], query: str) -> List[SearchResult]:
    """
    Return every shutter whose haystack contains all keywords of ``query``.

    An empty query has no keywords and therefore matches every shutter.
    The returned results reference the given tree; copy them before
    handing them out.
    """
    keywords = tokenize(query)
    results = []

    for project in projects:
        for building in project.buildings:
            for zone in building.functional_zones:
                for shutter in zone.shutters:
                    haystack = build_haystack(shutter, zone, building, project)
                    if all(keyword in haystack for keyword in keywords):
                        results.append(SearchResult(shutter, zone, building, project))

    return results
