"""
Application settings and configuration

Uses pydantic-settings for type-safe configuration via environment variables.
All settings use GASTRO_ prefix (e.g., GASTRO_STRICT_MODE=true).

Settings can also be loaded from a .env file in the project root.
"""

from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """
    Application configuration via environment variables.

    Environment variables use GASTRO_ prefix.

    Examples:
        GASTRO_COMPONENT_EXTENSION=.gxc
        GASTRO_STRICT_MODE=true
        GASTRO_ESCAPE_HTML=true
    """

    model_config = SettingsConfigDict(
        env_prefix="GASTRO_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Resolver configuration
    component_extension: str = Field(
        default=".gxc",
        description="File extension of component source files",
    )

    index_exclude_dirs: List[str] = Field(
        default_factory=lambda: ["pages", "node_modules", "vendor"],
        description="Directory names skipped when indexing components (hidden dirs are always skipped)",
    )

    root_alias: str = Field(
        default="@/",
        description="Import prefix that resolves relative to the base directory",
    )

    # Frontmatter configuration
    api_name: str = Field(
        default="Galaxy",
        description="Name of the builtin API object bound in every frontmatter environment",
    )

    # Template configuration
    directive_namespace: str = Field(
        default="galaxy",
        description="Optional namespace accepted in front of directive attributes (galaxy:if)",
    )

    default_slot: str = Field(
        default="default",
        description="Slot name used for unnamed <slot/> placeholders and inline content",
    )

    escape_html: bool = Field(
        default=False,
        description="HTML-escape interpolated values",
    )

    # Compilation configuration
    strict_mode: bool = Field(
        default=False,
        description="Strict mode: nested component failures abort the page instead of rendering an error comment",
    )

    error_comments: bool = Field(
        default=True,
        description="Describe contained component failures in an HTML comment (empty string otherwise)",
    )

    max_depth: int = Field(
        default=32,
        description="Maximum component nesting depth before compilation is aborted",
    )

    verbosity: int = Field(
        default=1,
        description="Default logging verbosity for compiles that do not specify one",
    )

    def errorComment_make(self, component: str, message: str) -> str:
        """
        Build the inert placeholder substituted for a failed child component.

        Args:
            component: Tag name of the failed component
            message: Error description

        Returns:
            HTML comment (or empty string when error_comments is off)

        Example:
            >>> settings = AppSettings()
            >>> settings.errorComment_make("Card", "not found")
            '<!-- Error rendering Card: not found -->'
        """
        if not self.error_comments:
            return ""
        # "--" would terminate the comment early
        safe = message.replace("--", "- -")
        return f"<!-- Error rendering {component}: {safe} -->"

    def placeHolder_make(self, index: int, kind: str = "COMPONENT") -> str:
        """
        Generate a placeholder standing in for already finished markup.

        Rendered child components (kind COMPONENT) and directive elements
        left as written (kind DIRECTIVE) are swapped back in after the
        remaining passes, so those passes never see them.

        Args:
            index: Sequence number of the protected markup
            kind: Namespace keeping the compiler's and engine's placeholders apart

        Returns:
            Placeholder string (NUL-delimited, cannot occur in source text)

        Example:
            >>> AppSettings().placeHolder_make(0)
            '\\x00COMPONENT_0\\x00'
        """
        return f"\x00{kind}_{index}\x00"

    def directiveNames_get(self) -> List[str]:
        """
        Attribute spellings recognised for each directive.

        Example:
            >>> AppSettings().directiveNames_get()
            ['galaxy:if', 'galaxy:for', 'if', 'for']
        """
        names = []
        if self.directive_namespace:
            names += [f"{self.directive_namespace}:if", f"{self.directive_namespace}:for"]
        return names + ["if", "for"]


# Singleton instance - import this in your code
appsettings = AppSettings()
