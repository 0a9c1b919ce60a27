# usbmoded

A library for managing the USB mode of a Linux device that acts as a USB
gadget. All paths to sysfs, configfs and the kernel command line can be
passed in, so every part can be pointed at a temporary directory.

## What is in it

- `usbmoded.keyfile` — `KeyFile`, a small reader and writer for ini-style
  files (`from_text`, `load`, `get_value`, `get_int`, `set_value`,
  `remove_key`, `remove_group`, `merge`, `merge_file`, `purge`,
  `purge_empty_groups`, `to_data`). Parse errors raise `KeyFileError`.
- `usbmoded.config` — `Config`, layered settings: `*.ini` files from a static
  directory (read in sorted order, seeded with `mode=ask` in `[usbmode]`), an
  optional legacy file that `init()` migrates, and a dynamic file that keeps
  only values differing from the static ones. `set_setting()` returns a
  `SetConfigResult` (`UPDATED` or `UNCHANGED`) and calls `on_change` when a
  value changes. Accessors such as `find_mounts()`, `network_setting()`,
  `android_vendor_id()` and `hidden_modes()` read single settings;
  `network_setting()` applies kernel command line overrides and the defaults
  `192.168.2.15`, `usb0` and `255.255.255.0`. `set_network_setting()` raises
  `ValueError` for an invalid address or a setting that cannot be changed.
- `usbmoded.cmdline` — `validate_ip()`, `parse_kernel_cmdline()` and
  `read_kernel_cmdline()` for the `usb_moded_ip=` kernel argument.
- `usbmoded.common` — mode name constants, `CableState`, `ModeListType`,
  `cable_state_repr()`, `map_mode_to_hardware()`, `map_mode_to_external()`,
  `modename_is_static()` and `modename_is_internal()`.
- `usbmoded.modelist` — `ModeRegistry`, which builds supported and available
  mode lists (hidden modes, whitelist and a permission callback applied,
  always ending with `charging_only`), reads and stores the default mode
  (`mode_setting()`, `set_mode_setting()`), and hides, unhides and
  whitelists modes. Changes are reported through an optional `notify`
  callback.
- `usbmoded.android` — `AndroidGadget`, which drives the `android_usb` sysfs
  interface, plus `format_usb_id()`, `parse_android_serial()` and
  `read_android_serial()`.
- `usbmoded.configfs` — `ConfigfsGadget`, which drives a configfs USB gadget:
  binding the UDC, enabling functions through configuration links, setting
  ids and managing mass storage LUNs. Its paths come from
  `usbmoded.configfs_layout.ConfigfsLayout` (built from the `[configfs]`
  settings with `ConfigfsLayout.from_config()`); the filesystem primitives
  are in `usbmoded.configfs_fs`.
- `usbmoded.applications` — `Application` and `load_applications()`, which
  load the `*.ini` descriptions of applications tied to a mode, drop invalid
  ones and sort the rest by name ignoring case.
- `usbmoded.system` — `write_to_sysfs_file()`, `acquire_wakelock()`,
  `release_wakelock()`, `run_command()`, `open_pipe()`, and the napping
  `wait()` / `msleep()` helpers returning `WaitResult`.

## Installation

```
pip install .
```

There are no runtime dependencies beyond the standard library. To run the
tests:

```
pip install ".[test]"
pytest
```

## Example

```python
import tempfile

from usbmoded.common import ModeListType
from usbmoded.config import Config
from usbmoded.keyfile import KeyFile
from usbmoded.modelist import ModeRegistry

static_dir = tempfile.mkdtemp()
dynamic_dir = tempfile.mkdtemp()

config = Config(static_dir=static_dir, dynamic_dir=dynamic_dir)
config.init()

print(config.find_mounts())                # "/dev/mmcblk0p1" by default

registry = ModeRegistry(config, modes=["mtp_mode", "developer_mode"])
print(registry.mode_list(ModeListType.SUPPORTED))
# "mtp_mode, developer_mode, charging_only"

ini = KeyFile.from_text("[usbmode]\nmode=ask\n")
print(ini.get_value("usbmode", "mode"))    # "ask"
```

## What it does not do

- It is a library only: there is no command and no long-running service.
- It offers no D-Bus interface and sends no D-Bus signals; changes are
  reported only through the callbacks you pass in.
- It does not start or stop the applications described by appsync files;
  `usbmoded.applications` only loads and validates their descriptions.
- It does not detect cable connections or switch modes by itself, and it
  does not read the device MAC address: gadget `init()` methods take the MAC
  address (and, for configfs, the serial number) as arguments.