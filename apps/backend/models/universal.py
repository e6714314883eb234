"""
Universal JSON document model.

Wire format for PPTX -> JSON and JSON -> PPTX. Field names are the
camelCase names used on the wire; every unit is points (or degrees for
rotation). Nodes are frozen: the converter builds the tree bottom-up and
returns it without further mutation.
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

SCHEMA_VERSION = "1.0"

ShapeType = Literal[
    "AutoShape",
    "Picture",
    "VideoFrame",
    "AudioFrame",
    "GroupShape",
    "Table",
    "Chart",
    "OleObject",
    "SmartArt",
    "TextBox",
    "Connector",
    "Unknown",
]

FillType = Literal["NoFill", "Solid", "Gradient", "Pattern", "PictureFill"]


class UniversalModel(BaseModel):
    model_config = ConfigDict(frozen=True)


# --- Formatting ---

class GradientStop(UniversalModel):
    color: str = Field(default="#000000", description="#RRGGBB")
    position: float = Field(default=0.0, description="Stop position in [0, 1]")


class Fill(UniversalModel):
    """Fill, tagged by `type`. Only the payload fields of that type are set."""
    type: FillType = "NoFill"
    color: Optional[str] = Field(default=None, description="Solid colour, #RRGGBB")
    transparency: Optional[float] = Field(default=None, description="0 = opaque, 1 = fully transparent")
    gradientAngle: Optional[float] = None
    gradientStops: List[GradientStop] = Field(default_factory=list)
    patternStyle: Optional[str] = None
    foreColor: Optional[str] = None
    backColor: Optional[str] = None
    pictureContentType: Optional[str] = None


class Line(UniversalModel):
    fill: Optional[Fill] = None
    width: float = Field(default=0.0, description="Line width in points")
    dashStyle: Optional[str] = None


class ShadowEffect(UniversalModel):
    """Outer shadow"""
    blurRadius: float = 0.0
    direction: float = Field(default=0.0, description="Degrees")
    distance: float = 0.0
    color: Optional[str] = None
    transparency: float = 0.0


class GlowEffect(UniversalModel):
    radius: float = 0.0
    color: Optional[str] = None
    transparency: float = 0.0


class ReflectionEffect(UniversalModel):
    blurRadius: float = 0.0
    distance: float = 0.0
    startOpacity: float = Field(default=1.0, description="0-1")
    endOpacity: float = Field(default=0.0, description="0-1")


class EffectFormat(UniversalModel):
    """Shape effects from a:effectLst; only the effects present are set"""
    shadow: Optional[ShadowEffect] = None
    glow: Optional[GlowEffect] = None
    reflection: Optional[ReflectionEffect] = None
    softEdgeRadius: Optional[float] = None


class Geometry(UniversalModel):
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0
    rotation: float = Field(default=0.0, description="Degrees in [0, 360)")
    zOrder: int = Field(default=0, description="Position in the parent's shape tree")
    flipH: bool = False
    flipV: bool = False


# --- Text ---

class Portion(UniversalModel):
    """A run of text sharing one format"""
    text: str = ""
    fontName: str = "Arial"
    fontSize: float = 12.0
    bold: bool = False
    italic: bool = False
    underline: bool = False
    color: str = "#000000"


class Paragraph(UniversalModel):
    alignment: str = "Left"
    indent: int = Field(default=0, description="Outline level")
    portions: List[Portion] = Field(default_factory=list)


class TextFrame(UniversalModel):
    plainText: str = Field(
        default="",
        description="Portion texts of each paragraph joined by newlines; line breaks are \\v",
    )
    paragraphs: List[Paragraph] = Field(default_factory=list)
    wordWrap: Optional[bool] = None
    autoSize: Optional[str] = None
    verticalAnchor: Optional[str] = None
    marginLeft: Optional[float] = None
    marginRight: Optional[float] = None
    marginTop: Optional[float] = None
    marginBottom: Optional[float] = None


class Hyperlink(UniversalModel):
    address: str
    source: Literal["shape", "run"] = "shape"


# --- Kind payloads ---

class Crop(UniversalModel):
    left: float = 0.0
    top: float = 0.0
    right: float = 0.0
    bottom: float = 0.0


class PictureFormat(UniversalModel):
    contentType: Optional[str] = None
    filename: Optional[str] = None
    size: int = 0
    sha1: Optional[str] = None
    crop: Crop = Field(default_factory=Crop)
    data: Optional[str] = Field(default=None, description="Base64 image bytes, only when requested")


class MediaFormat(UniversalModel):
    contentType: Optional[str] = None
    embedded: bool = False
    size: int = 0
    linkedUri: Optional[str] = None
    volume: int = Field(default=50, description="0-100")


class TableCell(UniversalModel):
    text: str = ""
    rowSpan: int = 1
    colSpan: int = 1
    isMergeOrigin: bool = False
    isSpanned: bool = False


class TableRow(UniversalModel):
    height: float = 0.0
    cells: List[TableCell] = Field(default_factory=list)


class Table(UniversalModel):
    rows: List[TableRow] = Field(default_factory=list)
    columnWidths: List[float] = Field(default_factory=list)


class ChartInfo(UniversalModel):
    chartType: Optional[str] = None
    title: Optional[str] = None
    hasLegend: bool = False
    seriesNames: List[str] = Field(default_factory=list)
    categories: List[str] = Field(default_factory=list)


class OleFormat(UniversalModel):
    progId: Optional[str] = None
    embedded: bool = False
    size: int = 0


class SmartArtNode(UniversalModel):
    text: str = ""
    level: int = Field(default=0, description="0 = top level")
    position: int = Field(default=0, description="Order among siblings")


class SmartArtInfo(UniversalModel):
    layout: Optional[str] = None
    colorStyle: Optional[str] = None
    quickStyle: Optional[str] = None
    nodes: List[SmartArtNode] = Field(default_factory=list, description="Depth-first document order")


# --- Shapes and slides ---

class Shape(UniversalModel):
    shapeId: str = Field(description="Unique within the document")
    nativeId: Optional[int] = Field(default=None, description="Engine shape id, informational")
    name: str = ""
    type: ShapeType = "Unknown"
    autoShapeType: Optional[str] = None
    geometry: Geometry = Field(default_factory=Geometry)
    text: Optional[TextFrame] = None
    fillFormat: Optional[Fill] = None
    lineFormat: Optional[Line] = None
    effectFormat: Optional[EffectFormat] = None
    isVisible: bool = True
    isLocked: bool = False
    isPlaceholder: bool = False
    hyperlinks: List[Hyperlink] = Field(default_factory=list)
    shapes: List["Shape"] = Field(default_factory=list, description="Group children")
    pictureFormat: Optional[PictureFormat] = None
    mediaFormat: Optional[MediaFormat] = None
    table: Optional[Table] = None
    chart: Optional[ChartInfo] = None
    oleFormat: Optional[OleFormat] = None
    smartArt: Optional[SmartArtInfo] = None


class Background(UniversalModel):
    followsMaster: bool = True
    fill: Optional[Fill] = None


class Transition(UniversalModel):
    type: str = "None"
    speed: Optional[str] = None
    advanceOnClick: bool = True
    advanceAfterMs: Optional[int] = None


class Animation(UniversalModel):
    effectType: str = "Unknown"
    presetClass: Optional[str] = None
    targetShapeId: Optional[str] = None
    durationMs: Optional[int] = None
    delayMs: Optional[int] = None
    triggerType: Optional[str] = None


class Point(UniversalModel):
    x: float = 0.0
    y: float = 0.0


class Comment(UniversalModel):
    author: str = ""
    text: str = ""
    createdAt: Optional[str] = None
    position: Point = Field(default_factory=Point)


class Placeholder(UniversalModel):
    type: str = "Unknown"
    idx: int = 0
    shapeId: Optional[str] = None


class Slide(UniversalModel):
    slideId: int = Field(description="1-based position in the deck")
    name: str = ""
    hidden: bool = False
    shapes: List[Shape] = Field(default_factory=list)
    notes: str = ""
    background: Optional[Background] = None
    transition: Optional[Transition] = None
    animations: List[Animation] = Field(default_factory=list)
    comments: List[Comment] = Field(default_factory=list)
    placeholders: List[Placeholder] = Field(default_factory=list)
    layoutName: Optional[str] = None


# --- Document ---

class SlideSize(UniversalModel):
    width: float = 0.0
    height: float = 0.0


class DocumentMetadata(UniversalModel):
    title: str = ""
    subject: str = ""
    author: str = ""
    company: str = ""
    keywords: str = ""
    category: str = ""
    comments: str = ""
    lastModifiedBy: str = ""
    revision: int = 0
    createdAt: Optional[str] = None
    modifiedAt: Optional[str] = None
    slideCount: int = 0
    masterCount: int = 0
    layoutCount: int = 0
    slideSize: SlideSize = Field(default_factory=SlideSize)


class ProcessingStats(UniversalModel):
    slideCount: int = 0
    shapeCount: int = Field(default=0, description="Top-level shapes across all slides")
    nestedShapeCount: int = Field(default=0, description="All shapes including group children")
    textShapeCount: int = 0
    imageCount: int = 0
    mediaCount: int = 0
    tableCount: int = 0
    chartCount: int = 0
    failedSlides: int = 0
    failedShapes: int = 0
    fieldErrors: int = 0
    truncatedTexts: int = 0
    warnings: List[str] = Field(default_factory=list)
    processingTimeMs: int = 0


class UniversalPresentation(UniversalModel):
    version: str = SCHEMA_VERSION
    metadata: DocumentMetadata = Field(default_factory=DocumentMetadata)
    slides: List[Slide] = Field(default_factory=list)
    processingStats: ProcessingStats = Field(default_factory=ProcessingStats)


# --- Call options and results ---

class ConversionOptions(BaseModel):
    includeNotes: bool = True
    includeComments: bool = True
    includeAnimations: bool = True
    includeImageData: bool = Field(default=False, description="Embed picture bytes as base64 in pictureFormat.data")
    maxTextLength: Optional[int] = Field(default=None, gt=0, description="Truncate text longer than this")


class ErrorInfo(BaseModel):
    type: str
    code: str
    message: str


class ConversionResult(BaseModel):
    success: bool
    data: Optional[UniversalPresentation] = None
    error: Optional[ErrorInfo] = None
    processingTimeMs: int = 0


class FileStats(BaseModel):
    filePath: Optional[str] = None
    fileSize: int = 0
    slideCount: int = 0
    shapeCount: int = 0
    skippedShapes: int = 0
    truncatedTexts: int = 0
    warnings: List[str] = Field(default_factory=list)
    processingTimeMs: int = 0


class ComposeResult(BaseModel):
    success: bool
    stats: Optional[FileStats] = None
    error: Optional[ErrorInfo] = None
