"""
Binary WebSocket protocol for waveform display data.

Frame format:
  Offset  Size  Type     Field
  0       1     uint8    version (0x01)
  1       1     uint8    message_type
  2       2     uint16   flags (big-endian)
  4       4     uint32   payload_length (big-endian)
  8       ...   payload  (varies by message_type)

Message types:
  0x01 = Waveform display data
  0x02 = Statistics (JSON) -- sent as text frame instead

Flags:
  0x0001 = FLAG_DOWNSAMPLED  (levels were RMS-reduced to fit the budget)
  0x0002 = FLAG_RECORDING    (session is recording)

Waveform payload (type 0x01):
  Offset  Size       Type      Field
  0       4          float32   zoom duration (minutes)
  4       4          uint32    zoom max points
  8       4          uint32    num_levels
  12      4          uint32    buffer point count
  16      4          uint32    peak count (visible window)
  20      8          float64   timestamp (unix seconds)
  -- 28 bytes waveform header --
  28      N*4        float32[] levels (num_levels floats)
"""

import struct
import time
from dataclasses import dataclass

import numpy as np

VERSION = 0x01

# Message types
MSG_WAVEFORM = 0x01

# Flags
FLAG_NONE = 0x0000
FLAG_DOWNSAMPLED = 0x0001
FLAG_RECORDING = 0x0002

# Frame header: version(B) + type(B) + flags(H) + payload_len(I) = 8 bytes
FRAME_HEADER_FMT = '!BBHI'
FRAME_HEADER_SIZE = struct.calcsize(FRAME_HEADER_FMT)

# Waveform header within payload
WAVEFORM_HEADER_FMT = '!fIIIId'
WAVEFORM_HEADER_SIZE = struct.calcsize(WAVEFORM_HEADER_FMT)


class ProtocolError(ValueError):
    """Raised when a frame cannot be decoded."""


@dataclass
class WaveformFrame:
    """Decoded waveform frame."""
    flags: int
    duration_minutes: float
    max_points: int
    buffer_points: int
    peak_count: int
    timestamp: float
    levels: np.ndarray

    @property
    def downsampled(self):
        return bool(self.flags & FLAG_DOWNSAMPLED)

    @property
    def recording(self):
        return bool(self.flags & FLAG_RECORDING)


def encode_waveform_packet(
    levels,
    duration_minutes,
    max_points,
    buffer_points=0,
    peak_count=0,
    downsampled=False,
    recording=False,
    timestamp=None,
):
    """
    Encode display levels into binary packet.

    Args:
        levels: Sequence or numpy array of levels
        duration_minutes: Zoom window in minutes
        max_points: Zoom point budget
        buffer_points: Points currently held by the buffer
        peak_count: Peaks inside the zoom window
        downsampled: True if levels were reduced
        recording: True while the session records
        timestamp: Unix seconds (defaults to now)

    Returns:
        bytes: complete binary packet
    """
    data = np.asarray(levels, dtype=np.float32)
    flags = FLAG_NONE
    if downsampled:
        flags |= FLAG_DOWNSAMPLED
    if recording:
        flags |= FLAG_RECORDING

    waveform_header = struct.pack(
        WAVEFORM_HEADER_FMT,
        float(duration_minutes),
        int(max_points),
        int(len(data)),
        int(buffer_points),
        int(peak_count),
        time.time() if timestamp is None else float(timestamp),
    )

    # Levels as big-endian float32 to match the header byte order
    payload = waveform_header + data.astype('>f4').tobytes()

    header = struct.pack(
        FRAME_HEADER_FMT,
        VERSION,
        MSG_WAVEFORM,
        flags,
        len(payload),
    )

    return header + payload


def encode_projection_packet(projection, buffer_points=0, recording=False):
    """Encode a Projection from the display projector."""
    return encode_waveform_packet(
        projection.levels,
        projection.target.duration_minutes,
        projection.target.max_points,
        buffer_points=buffer_points,
        peak_count=projection.peak_count,
        downsampled=projection.downsampled,
        recording=recording,
    )


def decode_waveform_packet(packet):
    """
    Decode a waveform packet.

    Args:
        packet: bytes as produced by encode_waveform_packet()

    Returns:
        WaveformFrame

    Raises:
        ProtocolError: on truncated, foreign or unsupported frames
    """
    if len(packet) < FRAME_HEADER_SIZE + WAVEFORM_HEADER_SIZE:
        raise ProtocolError(f"Frame too short: {len(packet)} bytes")

    version, msg_type, flags, payload_len = struct.unpack_from(FRAME_HEADER_FMT, packet)
    if version != VERSION:
        raise ProtocolError(f"Unsupported version 0x{version:02x}")
    if msg_type != MSG_WAVEFORM:
        raise ProtocolError(f"Unexpected message type 0x{msg_type:02x}")
    if len(packet) - FRAME_HEADER_SIZE != payload_len:
        raise ProtocolError(
            f"Payload length {payload_len} != {len(packet) - FRAME_HEADER_SIZE}"
        )

    (duration, max_points, num_levels, buffer_points,
     peak_count, timestamp) = struct.unpack_from(
        WAVEFORM_HEADER_FMT, packet, FRAME_HEADER_SIZE
    )
    offset = FRAME_HEADER_SIZE + WAVEFORM_HEADER_SIZE
    if payload_len - WAVEFORM_HEADER_SIZE != num_levels * 4:
        raise ProtocolError(f"Level count {num_levels} does not match payload")

    levels = np.frombuffer(packet, dtype='>f4', count=num_levels, offset=offset)

    return WaveformFrame(
        flags=flags,
        duration_minutes=duration,
        max_points=max_points,
        buffer_points=buffer_points,
        peak_count=peak_count,
        timestamp=timestamp,
        levels=levels.astype(np.float32),
    )
