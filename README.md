# railsim

Building blocks for a train simulator: readers for the text, binary and
texture files used by route and rolling-stock packages, and physical
models of railway air brakes and a Morse telegraph sounder. The package
uses only the Python standard library.

## Installation

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Modules

- `railsim.mstsfile` – parses the parenthesised UTF-16 text format.
  `MSTSFile.read_file` reads a file (trying a case-corrected name when the
  path does not exist), `MSTSFile.find` looks up a top-level block and
  `MSTSFile.format_tree` lists every node. The parsed items are `FileNode`
  objects with `child`, `find` and `cat_children`. The lower-level pieces
  are `decode_text`, `tokenize`, `parse_text`, `find_after` and
  `fix_filename_case`. Unreadable or malformed files raise `MSTSFileError`.
- `railsim.mstsbfile` – `open_binary` opens a binary file and returns a
  `BinaryReader` (usable as a context manager) for plain or zlib
  compressed bodies, with `get_bytes`, `skip`, `get_byte`, `get_short`,
  `get_int`, `get_float`, `get_string` and `seek`. Compressed files can
  only be sought forwards. Errors raise `BinaryFileError`.
- `railsim.consist` – `Consist.read_file` loads the nodes of a consist
  file; `format_tree` renders any list of nodes as indented text.
- `railsim.ace` – `read_ace` decodes an ACE texture into an `AceImage`
  holding its width, height, `TextureFormat` (plain RGB/RGBA or BC1 blocks)
  and one byte string per mipmap level. `AceCache` reads each path once and
  keeps the result until `clear` is called. Bad files raise `AceError`.
- `railsim.activity` – `Activity.read_file` (or `Activity.load_nodes` for
  an already parsed file) collects the player service and start time,
  traffic (`Traffic`), loose consists (`LooseConsist` with their `Wagon`s)
  and timed or located events (`Event`); the briefing becomes the first
  event.
- `railsim.airtank` – `AirTank`, `AirPipe` and `mass_flow_rate` model
  compressible air flow between reservoirs, to atmosphere and along a
  brake pipe. Pressures are absolute pascals; `psig` gives gauge psi.
- `railsim.brakevalve` – `BrakeValve` describes a valve as tanks, pistons,
  states and passages. `get_valve` returns a shared valve of type `"K"`,
  `"AB"`, `"H6"`, `"L"` or `"AMM"`; any other name gives `"K"`. Faulty
  descriptions raise `BrakeValveError`.
- `railsim.airbrake` – `AirBrake` is the equipment of one car and
  `EngAirBrake` that of a locomotive, which adds a compressor, a main
  reservoir and an equalising reservoir controlled by `auto_control`.
  `create_air_brake` picks the right one.
- `railsim.morse` – `MorseConverter` turns text into unsigned 8-bit
  samples in American or International code (`CodeType`), either as a
  CW tone or as sounder click/clack samples (`SounderType`).
  `american_code` and `international_code` give the code for one
  character.

## Example

```python
from railsim.airbrake import create_air_brake

engine = create_air_brake(True, 90, "K")
car = create_air_brake(False, 90, "AB")
engine.set_next(car)
car.set_prev(engine)
engine.set_next_open(True)
car.set_prev_open(True)
for brake in (engine, car):
    brake.set_pipe_pressure(90)
    brake.set_aux_res_pressure(90)

for _ in range(100):
    for brake in (engine, car):
        brake.update_air_speeds(0.1)
    for brake in (engine, car):
        brake.update_pressures(0.1)
print(car.pressure("BP"))
```

A new `EngAirBrake` starts with `eng_cut_out` set, so its compressor and
brake handle do nothing until that is cleared.

```python
from railsim.morse import MorseConverter

samples = MorseConverter().make_sound("OS")
```

## What it does not do

This is a library only. It has no command, no window or 3D view, no
sound output (the Morse samples are returned as bytes for the caller to
play), and no train movement, track, signalling or dispatching model. The
consist reader keeps the parsed nodes without interpreting them.