import tempfile
from pathlib import Path

import ezdxf

import ezresolve


workdir = Path(tempfile.mkdtemp())
source = workdir / "blocks_2010.dxf"

doc = ezdxf.new("R2010")
block = doc.blocks.new(name="DOOR")
block.add_line((0, 0), (1, 0), dxfattribs={"color": 0})
block.add_arc((0, 0), radius=1, start_angle=0, end_angle=90, dxfattribs={"color": 0})

msp = doc.modelspace()
msp.add_blockref("DOOR", (10, 0), dxfattribs={"color": 1, "rotation": 90})
hatch = msp.add_hatch(color=3)
hatch.paths.add_polyline_path([(0, 0), (5, 0), (5, 5), (0, 5)], is_closed=True)
doc.saveas(source)

result = ezresolve.convert_file(
    str(source),
    str(workdir / "blocks_2010_flat.dxf"),
    types="LINE ARC INSERT HATCH",
    dxf_version="R2010",
)
print(result)
