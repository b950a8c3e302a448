"""Element records and enums of the .qua format.

Hitsounds are stored as the raw bit field; :class:`HitSounds` gives a flag
view of it.
"""
from enum import Enum, IntFlag
from typing import List

from pydantic import Field

from .schema import I32, U8, Bool, Float, QuaModel, by_value


class GameMode(Enum):
    """Game mode of the map"""
    Keys4 = 1
    Keys7 = 2

    @classmethod
    def from_key_count(cls, key_count: int) -> "GameMode | None":
        return {4: cls.Keys4, 7: cls.Keys7}.get(key_count)

    @property
    def key_count(self) -> int:
        return 4 if self is GameMode.Keys4 else 7


class TimeSignature(Enum):
    """Time signature of a timing point, written as its number of beats."""
    Quadruple = 4
    Triple = 3


class HitSounds(IntFlag):
    Normal = 1
    Whistle = 2
    Finish = 4
    Clap = 8


TimeSignatureValue = by_value(TimeSignature)


class EditorLayerInfo(QuaModel):
    """Editor layer used to separate notes. Color is in rrr,ggg,bbb format."""
    name: str = Field("", alias="Name")
    hidden: Bool = Field(False, alias="Hidden")
    color_rgb: str = Field("255,255,255", alias="ColorRgb")


class CustomAudioSampleInfo(QuaModel):
    """Custom audio sample that can be assigned to hit objects.

    When ``unaffected_by_rate`` is set the sample always plays at 1.0x speed.
    """
    path: str = Field("", alias="Path")
    unaffected_by_rate: Bool = Field(False, alias="UnaffectedByRate")


class SoundEffectInfo(QuaModel):
    """Sound sample played at a specific moment in time.

    ``sample`` is the one-based index into ``Qua.custom_audio_samples``.
    """
    start_time: Float = Field(0.0, alias="StartTime")
    sample: I32 = Field(0, alias="Sample")
    volume: I32 = Field(0, alias="Volume")


class TimingPointInfo(QuaModel):
    """A moment in time where the BPM of the song changes."""
    start_time: Float = Field(0.0, alias="StartTime")
    bpm: Float = Field(0.0, alias="Bpm")
    signature: TimeSignatureValue = Field(TimeSignature.Quadruple, alias="Signature")
    hidden: Bool = Field(False, alias="Hidden")


class ScrollVelocityInfo(QuaModel):
    """A moment in time where the scroll velocity changes.

    Both fields are required. The multiplier is relative to the current
    timing section's BPM unless ``Qua.bpm_does_not_affect_scroll_velocity``.
    """
    start_time: I32 = Field(..., alias="StartTime")
    multiplier: Float = Field(..., alias="Multiplier")


class KeySoundInfo(QuaModel):
    # sample indexes Qua.custom_audio_samples, volume is 0-100
    sample: I32 = Field(0, alias="Sample")
    volume: I32 = Field(100, alias="Volume")


class HitObjectInfo(QuaModel):
    """A note to be played in-game. A long note has ``end_time > 0``."""
    start_time: I32 = Field(0, alias="StartTime")
    lane: I32 = Field(1, alias="Lane")
    end_time: I32 = Field(0, alias="EndTime")
    hit_sound: U8 = Field(0, alias="HitSound")
    key_sounds: List[KeySoundInfo] = Field(default_factory=list, alias="KeySounds")
    editor_layer: I32 = Field(0, alias="EditorLayer")

    @property
    def is_long_note(self) -> bool:
        return self.end_time > 0

    @property
    def hit_sounds(self) -> HitSounds:
        return HitSounds(self.hit_sound)

    @hit_sounds.setter
    def hit_sounds(self, value: HitSounds) -> None:
        self.hit_sound = int(value)
