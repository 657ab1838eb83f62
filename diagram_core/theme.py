"""
Colour schemes and the theme cycle used to colour newly laid-out nodes.

The cycle is an explicit object passed to `layout`, so two layouts given the
same starting cycle colour nodes identically.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class NodeColors:
    fill: str
    stroke: str
    text: str


@dataclass(frozen=True)
class ColorScheme:
    id: str
    name: str
    primary: NodeColors
    secondary: NodeColors
    accent: NodeColors
    line_color: str
    background_color: str


@dataclass(frozen=True)
class ThemeColors:
    """Colours handed out for one node."""
    fill: str
    stroke: str
    text: str
    line: str
    background: str


COLOR_SCHEMES: dict[str, ColorScheme] = {
    scheme.id: scheme
    for scheme in (
        ColorScheme(
            id="default",
            name="Default",
            primary=NodeColors("#ffffff", "#333333", "#333333"),
            secondary=NodeColors("#f3f4f6", "#6b7280", "#374151"),
            accent=NodeColors("#3b82f6", "#1d4ed8", "#ffffff"),
            line_color="#333333",
            background_color="#f8fafc",
        ),
        ColorScheme(
            id="corporate",
            name="Corporate Blue",
            primary=NodeColors("#ffffff", "#1e40af", "#1e3a8a"),
            secondary=NodeColors("#eff6ff", "#3b82f6", "#1d4ed8"),
            accent=NodeColors("#2563eb", "#1d4ed8", "#ffffff"),
            line_color="#1e40af",
            background_color="#f8fafc",
        ),
        ColorScheme(
            id="executive",
            name="Executive",
            primary=NodeColors("#ffffff", "#334155", "#0f172a"),
            secondary=NodeColors("#f8fafc", "#64748b", "#334155"),
            accent=NodeColors("#334155", "#1e293b", "#ffffff"),
            line_color="#334155",
            background_color="#f8fafc",
        ),
        ColorScheme(
            id="consultant",
            name="Consultant",
            primary=NodeColors("#ffffff", "#0369a1", "#0c4a6e"),
            secondary=NodeColors("#f0f9ff", "#0ea5e9", "#075985"),
            accent=NodeColors("#0284c7", "#0369a1", "#ffffff"),
            line_color="#0369a1",
            background_color="#f8fafc",
        ),
    )
}

CYCLE = ("primary", "secondary", "accent")


def get_color_scheme(scheme_id: str) -> ColorScheme:
    """Look up a scheme, falling back to the default one."""
    return COLOR_SCHEMES.get(scheme_id, COLOR_SCHEMES["default"])


class ThemeCycle:
    """Rotates primary -> secondary -> accent colours of one scheme."""

    def __init__(self, scheme_id: str = "default"):
        self.scheme_id = scheme_id
        self.index = 0

    def reset(self, scheme_id: str | None = None):
        if scheme_id is not None:
            self.scheme_id = scheme_id
        self.index = 0

    def next_colors(self) -> ThemeColors:
        scheme = get_color_scheme(self.scheme_id)
        node_colors: NodeColors = getattr(scheme, CYCLE[self.index % len(CYCLE)])
        self.index = (self.index + 1) % len(CYCLE)
        return ThemeColors(
            fill=node_colors.fill,
            stroke=node_colors.stroke,
            text=node_colors.text,
            line=scheme.line_color,
            background=scheme.background_color,
        )
