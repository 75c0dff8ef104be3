import copy

from config import COMPANY_NAME

# Arbre de navigation statique de la barre latérale.
# Les badges sont ajoutés à partir des compteurs du tableau de bord.
SIDEBAR_DATA = {
    "nav_main": [
        {"title": "Dashboard", "url": "/dashboard"},
        {"title": "Enquiries", "url": "/enquiries"},
        {
            "title": "Job Orders",
            "url": "/job-orders",
            "items": [
                {"title": "All", "url": "/job-orders"},
                {"title": "Pending", "url": "/job-orders/pending"},
            ],
        },
        {"title": "Follow-ups", "url": "/follow-ups"},
        {"title": "Proposals", "url": "/proposals"},
    ],
    "admin": [
        {"title": "Users", "url": "/admin/users"},
        {"title": "Branches", "url": "/admin/branches"},
    ],
    "nav_secondary": [
        {"title": "Profile", "url": "/profile"},
        {"title": "Settings", "url": "/config/proposal-api"},
    ],
}

COMPANY_INFO = {"name": COMPANY_NAME}


def _with_badge(item: dict, count) -> dict:
    # Un compteur nul n'affiche pas de badge
    if count:
        return {**item, "badge": count}
    return item


def apply_counts(nav_main: list, counts: dict) -> list:
    """Ajoute les badges (enquêtes, job orders en attente, relances) aux entrées concernées."""
    result = []
    for item in nav_main:
        if item["title"] == "Enquiries":
            item = _with_badge(item, counts.get("enquiries"))
        elif item["title"] == "Job Orders":
            item = {
                **item,
                "items": [
                    _with_badge(sub, counts.get("job_orders_pending")) if sub["title"] == "Pending" else sub
                    for sub in item.get("items", [])
                ],
            }
        elif item["title"] == "Follow-ups":
            item = _with_badge(item, counts.get("follow_ups"))
        result.append(item)
    return result


def compose_sidebar(role: str | None, counts: dict) -> dict:
    """Construit la barre latérale pour un rôle donné (None si pas de session)."""
    data = copy.deepcopy(SIDEBAR_DATA)
    return {
        "company": COMPANY_INFO,
        "nav_main": apply_counts(data["nav_main"], counts),
        "admin": data["admin"] if role == "admin" else [],
        "nav_secondary": data["nav_secondary"] if role != "telecaller" else [],
    }
