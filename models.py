"""Data models for the Confluence export to Markdown conversion pipeline."""

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, List, Optional


class PanelStyle(Enum):
    """Rendering styles for panels and admonitions."""
    BLOCKQUOTE = "blockquote"
    DIV = "div"
    SECTION = "section"


class TableStyle(Enum):
    """Rendering styles for standard data tables."""
    GITHUB = "github"
    SIMPLE = "simple"
    HTML = "html"


class CodeBlockStyle(Enum):
    """Rendering styles for code blocks."""
    FENCED = "fenced"
    INDENTED = "indented"


class ImageStyle(Enum):
    """Rendering styles for images."""
    MARKDOWN = "markdown"
    HTML = "html"


class LinkStyle(Enum):
    """Rendering styles for hyperlinks."""
    MARKDOWN = "markdown"
    HTML = "html"


class HeadingStyle(Enum):
    """Rendering styles for headings."""
    ATX = "atx"
    SETEXT = "setext"


class MacroHandling(Enum):
    """What to do with panels and macros found in the page body."""
    CONVERT = "convert"
    REMOVE = "remove"
    PRESERVE = "preserve"


class AttachmentOption(Enum):
    """Whether exported attachment files are copied next to the markdown."""
    VISIBLE = "visible"
    HIDDEN = "hidden"


@dataclass(frozen=True)
class ConversionOptions:
    """
    Configuration for a single conversion call.

    Style fields pick between alternative renderings; ``include_*`` fields
    switch individual constructs on or off. Instances are immutable, use
    ``dataclasses.replace`` to derive variants.
    """

    panel_style: PanelStyle = PanelStyle.BLOCKQUOTE
    table_style: TableStyle = TableStyle.GITHUB
    code_block_style: CodeBlockStyle = CodeBlockStyle.FENCED
    image_style: ImageStyle = ImageStyle.MARKDOWN
    link_style: LinkStyle = LinkStyle.MARKDOWN
    heading_style: HeadingStyle = HeadingStyle.ATX
    macro_handling: MacroHandling = MacroHandling.CONVERT
    attachment_option: AttachmentOption = AttachmentOption.VISIBLE

    # Document extras
    include_breadcrumbs: bool = False
    include_last_modified: bool = False
    include_attachments: bool = False
    include_metadata: bool = False
    include_page_info: bool = False
    include_labels: bool = False
    include_comments: bool = False

    # Content constructs
    include_version_history: bool = True
    include_table_of_contents: bool = True
    include_macros: bool = True
    include_images: bool = True
    include_links: bool = True
    include_code_blocks: bool = True
    include_tables: bool = True
    include_lists: bool = True
    include_blockquotes: bool = True
    include_horizontal_rules: bool = True
    include_headings: bool = True
    include_inline_formatting: bool = True
    include_special_characters: bool = True
    include_emojis: bool = True

    @property
    def wants_frontmatter(self) -> bool:
        """Frontmatter is emitted when any metadata-bearing option is on."""
        return self.include_metadata or self.include_breadcrumbs or self.include_last_modified

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'ConversionOptions':
        """
        Build options from a plain mapping (e.g. a YAML ``conversion`` section).

        Enum fields accept either the enum member or its string value.

        Raises:
            ValueError: On unknown keys or invalid enum values
        """
        if not data:
            return cls()

        known = {f.name: f for f in fields(cls)}
        unknown = sorted(set(data) - set(known))
        if unknown:
            raise ValueError(f"Unknown conversion option(s): {', '.join(unknown)}")

        values: Dict[str, Any] = {}
        for name, value in data.items():
            default = known[name].default
            if isinstance(default, Enum):
                enum_cls = type(default)
                if isinstance(value, enum_cls):
                    values[name] = value
                    continue
                try:
                    values[name] = enum_cls(str(value).lower())
                except ValueError:
                    allowed = [member.value for member in enum_cls]
                    raise ValueError(f"{name} must be one of: {allowed}") from None
            else:
                if not isinstance(value, bool):
                    raise ValueError(f"{name} must be a boolean")
                values[name] = value

        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize options to a plain dictionary."""
        result = {}
        for f in fields(self):
            value = getattr(self, f.name)
            result[f.name] = value.value if isinstance(value, Enum) else value
        return result


@dataclass(frozen=True)
class Breadcrumb:
    """One entry in a page's navigation trail."""

    text: str
    href: Optional[str] = None


@dataclass(frozen=True)
class PageComment:
    """A comment left on the page."""

    author: str
    text: str


@dataclass
class DocumentMetadata:
    """Page metadata pulled from a Confluence export."""

    title: str
    last_modified: str = ''
    created_by: str = ''
    created_date: str = ''
    breadcrumbs: List[Breadcrumb] = field(default_factory=list)
    labels: List[str] = field(default_factory=list)
    page_info: str = ''
    comments: List[PageComment] = field(default_factory=list)


@dataclass(frozen=True)
class AttachmentInfo:
    """A resource attached to a page in the HTML export."""

    id: str
    filename: str
    container_id: str
    href: str


@dataclass
class ConversionResult:
    """Everything produced by converting one page."""

    markdown: str
    metadata: DocumentMetadata
    attachments: Dict[str, AttachmentInfo] = field(default_factory=dict)

    @property
    def breadcrumbs(self) -> List[Breadcrumb]:
        return self.metadata.breadcrumbs


@dataclass
class ProcessedFile:
    """An HTML file discovered during a directory export."""

    input_path: str
    relative_path: str
    breadcrumbs: List[Breadcrumb] = field(default_factory=list)
