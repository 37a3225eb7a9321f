"""
Artifact assembly: one assembler per platform.
"""
from .base import AssemblyResult, BaseAssembler, safe_app_name
from .desktop import LinuxAssembler, MacOSAssembler, WindowsAssembler
from .mobile import AndroidAssembler, HarmonyOSAssembler, IOSAssembler
from .web import ChromeExtensionAssembler, WeChatAssembler

ASSEMBLER_MAPPING = {
    'android': AndroidAssembler,
    'ios': IOSAssembler,
    'harmonyos': HarmonyOSAssembler,
    'chrome': ChromeExtensionAssembler,
    'wechat': WeChatAssembler,
    'windows': WindowsAssembler,
    'macos': MacOSAssembler,
    'linux': LinuxAssembler,
    # APK builds start from the Android source project
    'android-source': AndroidAssembler,
}


def get_assembler(platform: str) -> BaseAssembler:
    """
    Get an assembler instance for a platform.

    Args:
        platform: Platform identifier

    Returns:
        BaseAssembler: Assembler instance

    Raises:
        ValueError: If no assembler handles the platform
    """
    assembler_class = ASSEMBLER_MAPPING.get(platform)
    if not assembler_class:
        raise ValueError(f"Unsupported platform: {platform}")
    return assembler_class()


__all__ = [
    'ASSEMBLER_MAPPING',
    'AssemblyResult',
    'BaseAssembler',
    'get_assembler',
    'safe_app_name',
]
