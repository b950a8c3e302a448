"""Read and write .qua chart files.

The .qua format is YAML, so PyYAML does the parsing and emitting; this module
maps the document onto :class:`Qua` and back.

    from qua_format.qua import Qua

    qua = Qua.from_file("123.qua")
    qua.title = "Never Gonna Give You Up"
    qua.to_file("test.qua")

Loading from a path raises :class:`QuaIOError` when the file cannot be read
and :class:`QuaFormatError` when its content does not fit the schema. Stream
and string variants only raise :class:`QuaFormatError`.

Saved files spell the scroll velocity switch ``BPMDoesNotAffectScrollVelocity``
as Quaver itself does. The PascalCase spelling
``BpmDoesNotAffectScrollVelocity`` is accepted on load, but never written.
"""
import io
import logging
from pathlib import Path
import re
from typing import IO, List

from pydantic import AliasChoices, Field
import yaml

from . import config
from .errors import QuaFormatError, QuaIOError
from .models import (
    CustomAudioSampleInfo,
    EditorLayerInfo,
    GameMode,
    HitObjectInfo,
    ScrollVelocityInfo,
    SoundEffectInfo,
    TimingPointInfo,
)
from .schema import I32, Bool, Float, QuaModel, by_name

LOG = logging.getLogger(__name__)

GameModeName = by_name(GameMode)

_BOOL = "tag:yaml.org,2002:bool"
_INT = "tag:yaml.org,2002:int"
_FLOAT = "tag:yaml.org,2002:float"
_NULL = "tag:yaml.org,2002:null"

_BOOL_RE = re.compile(r"^(?:true|True|TRUE|false|False|FALSE)$")
_INT_RE = re.compile(r"^(?:[-+]?[0-9]+|0x[0-9a-fA-F]+|0o[0-7]+)$")
_FLOAT_RE = re.compile(r"""^(?:[-+]?(?:\.[0-9]+|[0-9]+(?:\.[0-9]*)?)(?:[eE][-+]?[0-9]+)?
    |[-+]?\.(?:inf|Inf|INF)
    |\.(?:nan|NaN|NAN))$""", re.X)


class QuaLoader(yaml.SafeLoader):
    """SafeLoader that resolves plain scalars with the YAML 1.2 core schema.

    Under YAML 1.1 rules `Title: No` loads as false, `Title: 1:20` as 80 and
    `Title: 2024-01-01` as a date. Here only null, true/false, integers and
    floats are resolved; every other plain scalar stays a string.
    """


QuaLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag == _NULL]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}
QuaLoader.add_implicit_resolver(_BOOL, _BOOL_RE, list("tTfF"))
QuaLoader.add_implicit_resolver(_INT, _INT_RE, list("-+0123456789"))
QuaLoader.add_implicit_resolver(_FLOAT, _FLOAT_RE, list("-+0123456789."))


def _construct_int(loader, node):
    # decimal even with leading zeros; 0x and 0o prefixes pick the base
    value = loader.construct_scalar(node)
    if value.startswith(("0x", "0o")):
        return int(value, 0)
    return int(value)


QuaLoader.add_constructor(_INT, _construct_int)


class QuaDumper(yaml.SafeDumper):
    """SafeDumper that also quotes strings :class:`QuaLoader` would read as numbers.

    Strings YAML 1.1 readers would misread (`No`, `1:20`) stay quoted too.
    """


QuaDumper.add_implicit_resolver(_INT, _INT_RE, list("-+0123456789"))
QuaDumper.add_implicit_resolver(_FLOAT, _FLOAT_RE, list("-+0123456789."))


class Qua(QuaModel):
    """A single .qua chart: metadata plus its ordered note and timing data.

    Every field has a default, so ``Qua()`` is a valid empty 4K chart and a
    document may leave out any key.
    """
    audio_file: str = Field("", alias="AudioFile")
    # Milliseconds into the song where the preview starts
    song_preview_time: I32 = Field(0, alias="SongPreviewTime")
    background_file: str = Field("", alias="BackgroundFile")
    banner_file: str = Field("", alias="BannerFile")
    # -1 until the map is submitted
    map_id: I32 = Field(-1, alias="MapId")
    map_set_id: I32 = Field(-1, alias="MapSetId")
    game_mode: GameModeName = Field(GameMode.Keys4, alias="Mode")
    title: str = Field("", alias="Title")
    artist: str = Field("", alias="Artist")
    source: str = Field("", alias="Source")
    tags: str = Field("", alias="Tags")
    creator: str = Field("", alias="Creator")
    difficulty_name: str = Field("", alias="DifficultyName")
    description: str = Field("", alias="Description")
    genre: str = Field("", alias="Genre")
    # False: slider velocities are denormalized (BPM affects SV). True: normalized.
    bpm_does_not_affect_scroll_velocity: Bool = Field(
        False,
        alias="BPMDoesNotAffectScrollVelocity",
        validation_alias=AliasChoices("BPMDoesNotAffectScrollVelocity", "BpmDoesNotAffectScrollVelocity"),
    )
    # Only used when bpm_does_not_affect_scroll_velocity is set
    initial_scroll_velocity: Float = Field(1.0, alias="InitialScrollVelocity")
    has_scratch_key: Bool = Field(False, alias="HasScratchKey")
    editor_layers: List[EditorLayerInfo] = Field(default_factory=list, alias="EditorLayers")
    custom_audio_samples: List[CustomAudioSampleInfo] = Field(default_factory=list, alias="CustomAudioSamples")
    sound_effects: List[SoundEffectInfo] = Field(default_factory=list, alias="SoundEffects")
    timing_points: List[TimingPointInfo] = Field(default_factory=list, alias="TimingPoints")
    slider_velocities: List[ScrollVelocityInfo] = Field(default_factory=list, alias="SliderVelocities")
    hit_objects: List[HitObjectInfo] = Field(default_factory=list, alias="HitObjects")

    @property
    def key_count(self) -> int:
        """Number of playable lanes, counting the scratch key."""
        return self.game_mode.key_count + (1 if self.has_scratch_key else 0)

    @classmethod
    def from_file(cls, path: Path | str) -> "Qua":
        return load_from_path(path)

    @classmethod
    def from_reader(cls, reader: IO) -> "Qua":
        return load_from_stream(reader)

    @classmethod
    def from_str(cls, text: str) -> "Qua":
        return load_from_str(text)

    def to_file(self, path: Path | str) -> None:
        save_to_path(self, path)

    def to_writer(self, writer: IO) -> None:
        save_to_stream(self, writer)

    def to_str(self) -> str:
        return dump_to_str(self)

    def __str__(self) -> str:
        return dump_to_str(self)


def _parse(text: str, path: Path | None = None) -> Qua:
    try:
        raw = yaml.load(text, Loader=QuaLoader)
    except yaml.YAMLError as ex:
        raise QuaFormatError(f"invalid YAML: {ex}", path=path) from ex
    try:
        return Qua.from_mapping(raw)
    except QuaFormatError as ex:
        if path is None:
            raise
        raise QuaFormatError(ex.reason, ex.location, path) from ex


def load_from_str(text: str) -> Qua:
    """Parse .qua text into a :class:`Qua`."""
    return _parse(text)


def load_from_stream(reader: IO) -> Qua:
    """Parse a .qua document from an open text or binary stream."""
    try:
        data = reader.read()
    except (OSError, ValueError) as ex:
        raise QuaFormatError(f"could not read stream: {ex}") from ex
    if isinstance(data, bytes):
        try:
            data = data.decode(config.ENCODING)
        except UnicodeDecodeError as ex:
            raise QuaFormatError(f"stream is not valid {config.ENCODING}: {ex}") from ex
    if not isinstance(data, str):
        raise QuaFormatError(f"stream returned {type(data).__name__}, expected text or bytes")
    qua = _parse(data)
    LOG.debug("Loaded chart %r from stream", qua.title)
    return qua


def load_from_path(path: Path | str) -> Qua:
    """Read and parse the .qua file at ``path``."""
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as ex:
        raise QuaIOError(f"could not read {path}: {ex}", path) from ex
    try:
        text = data.decode(config.ENCODING)
    except UnicodeDecodeError as ex:
        raise QuaFormatError(f"file is not valid {config.ENCODING}: {ex}", path=path) from ex
    qua = _parse(text, path)
    LOG.debug("Loaded chart %r from %s", qua.title, path)
    return qua


def dump_to_str(qua: Qua) -> str:
    """Serialize ``qua`` to .qua text, every field in declaration order."""
    if not isinstance(qua, Qua):
        raise QuaFormatError(f"expected a Qua, got {type(qua).__name__}")
    mapping = qua.to_mapping()
    try:
        return yaml.dump(
            mapping,
            Dumper=QuaDumper,
            sort_keys=False,
            allow_unicode=config.ALLOW_UNICODE,
            width=config.YAML_WIDTH,
            default_flow_style=False,
        )
    except yaml.YAMLError as ex:
        raise QuaFormatError(f"could not serialize chart: {ex}") from ex


def _encode(text: str) -> bytes:
    try:
        return text.encode(config.ENCODING)
    except UnicodeEncodeError as ex:
        raise QuaFormatError(f"chart cannot be encoded as {config.ENCODING}: {ex}") from ex


def _is_binary(writer: IO) -> bool:
    if isinstance(writer, (io.RawIOBase, io.BufferedIOBase)):
        return True
    # wrappers such as SpooledTemporaryFile only report it through their mode
    mode = getattr(writer, "mode", "")
    return isinstance(mode, str) and "b" in mode


def save_to_stream(qua: Qua, writer: IO) -> None:
    """Serialize ``qua`` and write it to an open text or binary stream."""
    text = dump_to_str(qua)
    data = _encode(text) if _is_binary(writer) else text
    try:
        writer.write(data)
    except (OSError, ValueError, TypeError) as ex:
        raise QuaFormatError(f"could not write stream: {ex}") from ex
    LOG.debug("Wrote chart %r to stream", qua.title)


def save_to_path(qua: Qua, path: Path | str) -> None:
    """Serialize ``qua`` and write it to ``path``, creating or truncating the file.

    The chart is serialized before the file is opened, so a chart that cannot
    be written leaves an existing file untouched.
    """
    path = Path(path)
    data = _encode(dump_to_str(qua))
    try:
        path.write_bytes(data)
    except OSError as ex:
        raise QuaIOError(f"could not write {path}: {ex}", path) from ex
    LOG.debug("Saved chart %r to %s", qua.title, path)
