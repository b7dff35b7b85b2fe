"""Per-portfolio color themes, optionally overridden by a YAML file."""

import re
from dataclasses import dataclass
from pathlib import Path

import yaml

from picsorpix.utils.flow_log import log_flow

THEMES_FILE_NAME = 'themes.yaml'
_COLOR_PATTERN = re.compile(r'^(#[0-9a-fA-F]{3}|#[0-9a-fA-F]{6}|[a-zA-Z]+)$')


@dataclass(frozen=True)
class Theme:
    background: str = ''
    foreground: str = ''

    @property
    def is_default(self) -> bool:
        return not self.background and not self.foreground


DEFAULT_THEME = Theme()
BUILTIN_THEMES = {
    'urbex': Theme(background='black', foreground='red'),
    'moon': Theme(background='black', foreground='white'),
}


class PortfolioThemes:
    """Looks up the theme for a portfolio name (case-insensitive)."""

    def __init__(self, themes: dict[str, Theme] | None = None):
        self._themes = {name.lower(): theme
                        for name, theme in (themes if themes is not None
                                            else BUILTIN_THEMES).items()}

    def theme_for(self, portfolio_name: str | None) -> Theme:
        if not portfolio_name:
            return DEFAULT_THEME
        return self._themes.get(portfolio_name.lower(), DEFAULT_THEME)

    @classmethod
    def load(cls, images_root: Path) -> 'PortfolioThemes':
        """Load `themes.yaml` from the images root, on top of the built-in themes.

        Expected layout::

            portfolios:
              urbex: {background: black, foreground: red}
        """
        themes = dict(BUILTIN_THEMES)
        theme_path = Path(images_root) / THEMES_FILE_NAME
        if not theme_path.is_file():
            return cls(themes)

        try:
            with open(theme_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            log_flow("THEME", f"YAML parse error in {theme_path.name}: {e}", level="WARNING")
            return cls(themes)
        except OSError as e:
            log_flow("THEME", f"Cannot read {theme_path}: {e}", level="WARNING")
            return cls(themes)

        portfolios = data.get('portfolios', {}) if isinstance(data, dict) else {}
        if not isinstance(portfolios, dict):
            log_flow("THEME", f"'portfolios' in {theme_path.name} must be a mapping",
                     level="WARNING")
            return cls(themes)

        for name, entry in portfolios.items():
            if not isinstance(entry, dict):
                log_flow("THEME", f"Skipping theme {name!r}: expected a mapping",
                         level="WARNING")
                continue
            background = str(entry.get('background', '') or '')
            foreground = str(entry.get('foreground', '') or '')
            if any(color and not _COLOR_PATTERN.match(color)
                   for color in (background, foreground)):
                log_flow("THEME", f"Skipping theme {name!r}: invalid color", level="WARNING")
                continue
            themes[str(name)] = Theme(background=background, foreground=foreground)
        log_flow("THEME", f"Loaded {len(portfolios)} themes from {theme_path}")
        return cls(themes)
