"""
Catalog of backup-able desktop configuration components.
Adding a component means adding a ComponentSpec here (or in the config file);
detection and copying never special-case an id.
"""
from pathlib import Path
from typing import List, Optional

from .errors import RegistryError
from .models import ComponentSpec, ConfigValue, DirectoryScan, EnvValue, Settings, SettingsQuery

GTK3_SETTINGS = "~/.config/gtk-3.0/settings.ini"
GTK4_SETTINGS = "~/.config/gtk-4.0/settings.ini"
GNOME_INTERFACE = "org.gnome.desktop.interface"
VALUE = "{value}"

BUILTIN_COMPONENTS: List[ComponentSpec] = [
    ComponentSpec(
        id="gtk-themes",
        display_name="GTK Themes",
        category="Theming",
        description="GTK2/GTK3 theme files",
        detectors=[
            ConfigValue(label="GTK3", path=GTK3_SETTINGS, section="Settings", key="gtk-theme-name"),
            ConfigValue(label="GTK4", path=GTK4_SETTINGS, section="Settings", key="gtk-theme-name"),
            SettingsQuery(label="GTK", namespace=GNOME_INTERFACE, key="gtk-theme"),
        ],
        sources=[
            "~/.config/gtk-3.0",
            "~/.config/gtk-4.0",
            "~/.gtkrc-2.0",
            "~/.themes/{value}",
            "~/.local/share/themes/{value}",
            "/usr/share/themes/{value}",
        ],
    ),
    ComponentSpec(
        id="icons",
        display_name="Icons",
        category="Theming",
        description="Icon themes",
        detectors=[
            ConfigValue(label="Icons", path=GTK3_SETTINGS, section="Settings", key="gtk-icon-theme-name"),
            SettingsQuery(label="Icons", namespace=GNOME_INTERFACE, key="icon-theme"),
            ConfigValue(label="KDE Icons", path="~/.config/kdeglobals", section="Icons", key="Theme"),
        ],
        sources=[
            "~/.icons/{value}",
            "~/.local/share/icons/{value}",
            "/usr/share/icons/{value}",
        ],
    ),
    ComponentSpec(
        id="cursors",
        display_name="Cursors",
        category="Theming",
        description="Mouse cursor themes",
        detectors=[
            ConfigValue(label="Cursor", path=GTK3_SETTINGS, section="Settings", key="gtk-cursor-theme-name"),
            SettingsQuery(label="Cursor", namespace=GNOME_INTERFACE, key="cursor-theme"),
            ConfigValue(label="Cursor", path="~/.icons/default/index.theme", section="Icon Theme", key="Inherits"),
            DirectoryScan(
                label="Cursor",
                directories=["~/.icons", "~/.local/share/icons", "/usr/share/icons"],
                contains="cursor",
            ),
        ],
        sources=[
            "~/.icons/default",
            "~/.icons/{value}",
            "~/.local/share/icons/{value}",
            "/usr/share/icons/{value}",
        ],
    ),
    ComponentSpec(
        id="qt-styles",
        display_name="Qt/KDE Styles",
        category="Theming",
        description="Qt5/Qt6 styles",
        detectors=[
            ConfigValue(label="Qt5", path="~/.config/qt5ct/qt5ct.conf", section="Appearance", key="style"),
            ConfigValue(label="Qt6", path="~/.config/qt6ct/qt6ct.conf", section="Appearance", key="style"),
            ConfigValue(label="Kvantum", path="~/.config/Kvantum/kvantum.kvconfig", section="General", key="theme"),
        ],
        sources=[
            "~/.config/qt5ct",
            "~/.config/qt6ct",
            "~/.config/Kvantum",
        ],
    ),
    ComponentSpec(
        id="application-style",
        display_name="Application Style",
        category="Theming",
        description="Current desktop application style (Oxygen, Breeze, etc.)",
        detectors=[
            SettingsQuery(
                label="KDE Style", backend="kreadconfig5", namespace="KDE", key="widgetStyle",
                skip_values=["default"],
            ),
            ConfigValue(label="KDE Style", path="~/.config/kdeglobals", section="KDE", key="widgetStyle"),
            ConfigValue(label="KDE Theme", path="~/.config/kdeglobals", section="General", key="ColorSchemeKey"),
            SettingsQuery(label="GTK Style", namespace=GNOME_INTERFACE, key="gtk-theme", skip_values=["Adwaita"]),
        ],
        sources=[
            "~/.config/kdeglobals",
            "/etc/xdg/kdeglobals",
            "~/.local/share/plasma/look-and-feel",
        ],
    ),
    ComponentSpec(
        id="color-schemes",
        display_name="Colors Schemes",
        category="Theming",
        description="KDE color schemes",
        detectors=[
            ConfigValue(label="KDE", path="~/.config/kdeglobals", section="General", key="ColorScheme"),
            SettingsQuery(label="GNOME", namespace=GNOME_INTERFACE, key="color-scheme", skip_values=["default"]),
        ],
        sources=[
            "~/.local/share/color-schemes",
        ],
    ),
    ComponentSpec(
        id="fonts",
        display_name="Fonts",
        category="Theming",
        description="Interface fonts and fontconfig rules",
        detectors=[
            SettingsQuery(label="Font", namespace=GNOME_INTERFACE, key="font-name"),
            ConfigValue(label="Font", path=GTK3_SETTINGS, section="Settings", key="gtk-font-name"),
            ConfigValue(
                label="Font", path="~/.config/fontconfig/fonts.conf",
                pattern=r"<family>\s*([^<]+?)\s*</family>",
            ),
        ],
        sources=[
            "~/.config/fontconfig",
            "~/.fonts",
            "~/.local/share/fonts",
        ],
    ),
    ComponentSpec(
        id="window-decorations",
        display_name="Window Decorations",
        category="Window Manager",
        description="Window manager decorations and borders",
        detectors=[
            SettingsQuery(
                label="KWin", backend="kreadconfig5", file="kwinrc",
                namespace="org.kde.kdecoration2", key="library",
                skip_values=["org.kde.kwin.aurorae"],
            ),
            ConfigValue(label="KWin Theme", path="~/.config/kwinrc", section="org.kde.kdecoration2", key="theme"),
            ConfigValue(
                label="Openbox", path="~/.config/openbox/rc.xml",
                pattern=r"<theme>\s*<name>\s*([^<]+?)\s*</name>",
            ),
            ConfigValue(
                label="AwesomeWM", path="~/.config/awesome/rc.lua",
                pattern=r"beautiful\.init\(\s*[^)]*?([\w.-]+)/theme\.lua",
            ),
        ],
        sources=[
            "~/.config/kwinrc",
            "~/.local/share/aurorae",
            "~/.config/awesome",
            "~/.config/openbox",
            "/usr/share/kde4/config",
        ],
    ),
    ComponentSpec(
        id="wm-themes",
        display_name="Window Manager Themes",
        category="Window Manager",
        description="Tiling and stacking window manager configuration",
        detectors=[
            EnvValue(label="WM", variable="XDG_CURRENT_DESKTOP"),
            EnvValue(label="WM", variable="HYPRLAND_INSTANCE_SIGNATURE", value="Hyprland"),
            EnvValue(label="WM", variable="SWAYSOCK", value="sway"),
            EnvValue(label="WM", variable="I3SOCK", value="i3"),
            EnvValue(label="WM", variable="BSPWM_SOCKET", value="bspwm"),
            EnvValue(label="WM", variable="DESKTOP_SESSION"),
        ],
        sources=[
            "~/.config/i3",
            "~/.config/sway",
            "~/.config/hypr",
            "~/.config/bspwm",
            "~/.config/sxhkd",
            "~/.config/qtile",
            "~/.config/openbox",
            "~/.config/waybar",
            "~/.config/polybar",
            "~/.config/picom",
        ],
    ),
    ComponentSpec(
        id="splash-screen",
        display_name="Splash Screen",
        category="Boot",
        description="Boot splash screen and login animations",
        detectors=[
            ConfigValue(label="Plymouth", path="/etc/plymouth/plymouthd.conf", section="Daemon", key="Theme"),
            DirectoryScan(label="Plymouth", directories=["/usr/share/plymouth/themes"], link="default.plymouth"),
            ConfigValue(label="GRUB", path="/etc/default/grub", key="GRUB_THEME"),
        ],
        sources=[
            "/usr/share/plymouth/themes/{value}",
            "/etc/plymouth/plymouthd.conf",
            "/boot/grub/themes",
            "~/.config/plymouth",
        ],
    ),
    ComponentSpec(
        id="sddm-theme",
        display_name="SDDM Theme",
        category="Login Manager",
        description="SDDM login manager theme",
        detectors=[
            ConfigValue(label="SDDM", path="/etc/sddm.conf", section="Theme", key="Current"),
            ConfigValue(label="SDDM", path="/etc/sddm.conf.d/*.conf", section="Theme", key="Current"),
        ],
        sources=[
            "/usr/share/sddm/themes/{value}",
            "/etc/sddm.conf",
            "/etc/sddm.conf.d",
        ],
    ),
    ComponentSpec(
        id="terminal-themes",
        display_name="Terminal Themes",
        category="Terminal",
        description="Terminal emulator themes",
        detectors=[
            ConfigValue(
                label="Kitty", path="~/.config/kitty/kitty.conf",
                pattern=r"^\s*include\s+(\S*theme\S*)",
            ),
            ConfigValue(
                label="Alacritty", path="~/.config/alacritty/alacritty.toml",
                pattern=r"^\s*import\s*=\s*\[\s*[\"']([^\"']+)[\"']",
            ),
            ConfigValue(label="WezTerm", path="~/.config/wezterm/wezterm.lua", pattern=r"color_scheme\s*=\s*[\"']([^\"']+)[\"']"),
            SettingsQuery(label="GNOME Terminal", namespace="org.gnome.Terminal.ProfilesList", key="default"),
        ],
        sources=[
            "~/.config/alacritty",
            "~/.config/kitty",
            "~/.config/wezterm",
            "~/.config/ghostty",
            "~/.config/foot",
            "~/.config/tilix",
        ],
    ),
    ComponentSpec(
        id="shell-themes",
        display_name="Shell Themes",
        category="Shell",
        description="Shell prompt themes and rc files",
        detectors=[
            ConfigValue(label="Oh My Zsh", path="~/.zshrc", key="ZSH_THEME"),
            ConfigValue(label="Starship", path="~/.config/starship.toml", pattern=r"^\s*palette\s*=\s*[\"']([^\"']+)[\"']"),
            EnvValue(label="Shell", variable="SHELL", basename=True),
        ],
        sources=[
            "~/.zshrc",
            "~/.p10k.zsh",
            "~/.oh-my-zsh/custom/themes",
            "~/.bashrc",
            "~/.config/fish",
            "~/.config/starship.toml",
        ],
    ),
]

def default_registry() -> List[ComponentSpec]:
    """The built-in components, in display order."""
    return list(BUILTIN_COMPONENTS)

def validate_registry(components: List[ComponentSpec]) -> List[ComponentSpec]:
    seen_ids = set()
    seen_folders = set()
    for spec in components:
        if spec.id in seen_ids:
            raise RegistryError(f"Duplicate component id '{spec.id}'")
        if spec.dest_subfolder in seen_folders:
            raise RegistryError(f"Component '{spec.id}' reuses destination folder '{spec.dest_subfolder}'")
        seen_ids.add(spec.id)
        seen_folders.add(spec.dest_subfolder)
    return components

def load_registry(settings: Optional[Settings] = None) -> List[ComponentSpec]:
    """Built-in components followed by the user's extra components."""
    components = default_registry()
    if settings is not None:
        components.extend(settings.extra_components)
    return validate_registry(components)

def get_component(components: List[ComponentSpec], component_id: str) -> ComponentSpec:
    for spec in components:
        if spec.id == component_id:
            return spec
    raise RegistryError(f"Unknown component '{component_id}'")

def _usable_value(value: Optional[str]) -> bool:
    return bool(value) and "/" not in value and "\\" not in value and value not in (".", "..")

def resolve_sources(spec: ComponentSpec, host, value: Optional[str] = None) -> List[Path]:
    """
    Expand a component's path templates against the host, without checking
    existence. Templates needing a detected value are dropped when there is none.
    """
    paths: List[Path] = []
    for template in spec.sources:
        if VALUE in template:
            if not _usable_value(value):
                continue
            template = template.replace(VALUE, value)
        for path in host.glob(template):
            if path not in paths:
                paths.append(path)
    return paths
