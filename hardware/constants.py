"""
SoftGPU - Constants Module
Fixed limits shared by every stage of the pipeline.
"""

# Number of vertex attribute slots (puller heads, shader inputs and outputs)
MAX_ATTRIBUTES = 8

# Only triangles are assembled
VERTICES_PER_TRIANGLE = 3
EDGES_PER_TRIANGLE = 3

# One clipping pass against a single plane turns a triangle into at most two
MAX_CLIPPED_TRIANGLES_PER_PASS = 2

# Offset of the sampled point inside a pixel
PIXEL_CENTER = 0.5

# Reserved identifiers meaning "nothing"
EMPTY_BUFFER_ID = 0
EMPTY_PULLER_ID = 0
EMPTY_PROGRAM_ID = 0

# Allowed index element widths in bytes
INDEX_ELEMENT_SIZES = (1, 2, 4)
