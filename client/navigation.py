"""
Client routes, route guard and navigation menu.

Every decision about who may see a page goes through ``audience_for``, so
adding a role without mapping it fails loudly instead of silently showing
or hiding pages.
"""
import re
from dataclasses import dataclass
from typing import List, Optional, Union

from core.security import Audience, audience_for
from models.models import UserRoleEnum

LOGIN_PATH = "/login"
HOME_PATH = "/"
NOT_FOUND_PATH = "/404"


@dataclass(frozen=True)
class Route:
    path: str
    name: str
    public: bool = False
    audience: Optional[Audience] = None  # None: every signed-in user
    in_nav: bool = False

    @property
    def pattern(self) -> re.Pattern:
        return re.compile("^" + re.sub(r"\{[^/]+\}", r"[^/]+", self.path) + "/?$")

    def matches(self, path: str) -> bool:
        return bool(self.pattern.match(path))


ROUTES: List[Route] = [
    Route("/", "Accueil", in_nav=True),
    Route("/landing", "Découvrir EduKeeper", public=True),
    Route(LOGIN_PATH, "Connexion", public=True),
    Route("/documents", "Documents", in_nav=True),
    Route("/documents/{id}", "Document"),
    Route("/categories", "Catégories", in_nav=True),
    Route("/categories/{id}", "Catégorie"),
    Route("/upload", "Importer", in_nav=True),
    Route("/summarize", "Résumer", in_nav=True),
    Route("/exercises", "Exercices", in_nav=True),
    Route("/control", "Contrôle", in_nav=True),
    Route("/course", "Cours", in_nav=True),
    Route("/teacher", "Espace enseignant", audience=Audience.teacher, in_nav=True),
    Route("/history", "Historique", in_nav=True),
    Route("/profile", "Profil", in_nav=True),
    Route("/skins", "Skins", in_nav=True),
    Route("/subscription", "Abonnement", in_nav=True),
    Route(NOT_FOUND_PATH, "Page introuvable", public=True),
]


@dataclass(frozen=True)
class RouteDecision:
    """Outcome of the guard: render ``route`` or redirect to ``redirect_to``."""
    route: Optional[Route] = None
    redirect_to: Optional[str] = None

    @property
    def allowed(self) -> bool:
        return self.redirect_to is None


def find_route(path: str) -> Optional[Route]:
    path = path.split("?", 1)[0] or HOME_PATH
    return next((route for route in ROUTES if route.matches(path)), None)


def _role(role: Union[UserRoleEnum, str, None]) -> Optional[UserRoleEnum]:
    return None if role is None else UserRoleEnum(role)


def guard(path: str, role: Union[UserRoleEnum, str, None]) -> RouteDecision:
    """
    Decide what to show for ``path``.

    - unknown path: redirect to the 404 page
    - signed out on a private page: redirect to the login page
    - student on a teacher page: redirect to the home page
    """
    route = find_route(path)
    if route is None:
        return RouteDecision(redirect_to=NOT_FOUND_PATH)
    if route.public:
        return RouteDecision(route=route)

    role = _role(role)
    if role is None:
        return RouteDecision(redirect_to=LOGIN_PATH)
    if route.audience is not None and audience_for(role) is not route.audience:
        return RouteDecision(redirect_to=HOME_PATH)
    return RouteDecision(route=route)


def nav_items(role: Union[UserRoleEnum, str, None]) -> List[Route]:
    """Menu entries for the user's audience; signed-out users get none."""
    role = _role(role)
    if role is None:
        return []
    audience = audience_for(role)
    return [r for r in ROUTES if r.in_nav and (r.audience is None or r.audience is audience)]
