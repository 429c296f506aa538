"""AACP and ATT wire formats."""

from .att import (
    LOUD_SOUND_REDUCTION_HANDLE,
    ATTOpcode,
    decode_loud_sound_reduction,
    encode_loud_sound_reduction,
)
from .commands import (
    AACP_PSM,
    ATT_PSM,
    Opcode,
    build_add_tipi_device_packet,
    build_control_command_packet,
    build_handshake_packet,
    build_hijack_request_packet,
    build_hijack_reversed_packet,
    build_media_information_new_device_packet,
    build_media_information_packet,
    build_phone_media_eq_packet,
    build_proximity_keys_request,
    build_rename_packet,
    build_request_notifications_packet,
    build_set_feature_flags_packet,
    build_smart_routing_show_ui_packet,
)
from .responses import split_packet
from .transparency import (
    TRANSPARENCY_HANDLE,
    decode_transparency_settings,
    encode_transparency_settings,
    require_transparency_settings,
)

__all__ = [
    "AACP_PSM",
    "ATT_PSM",
    "ATTOpcode",
    "LOUD_SOUND_REDUCTION_HANDLE",
    "Opcode",
    "TRANSPARENCY_HANDLE",
    "build_add_tipi_device_packet",
    "build_control_command_packet",
    "build_handshake_packet",
    "build_hijack_request_packet",
    "build_hijack_reversed_packet",
    "build_media_information_new_device_packet",
    "build_media_information_packet",
    "build_phone_media_eq_packet",
    "build_proximity_keys_request",
    "build_rename_packet",
    "build_request_notifications_packet",
    "build_set_feature_flags_packet",
    "build_smart_routing_show_ui_packet",
    "split_packet",
    "decode_loud_sound_reduction",
    "encode_loud_sound_reduction",
    "decode_transparency_settings",
    "encode_transparency_settings",
    "require_transparency_settings",
]
