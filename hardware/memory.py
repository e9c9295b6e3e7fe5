"""
SoftGPU - Memory Module
Byte storage behind GPU buffers and the address type used to point into it.
"""

import logging
import struct

import numpy as np

from hardware.constants import EMPTY_BUFFER_ID
from hardware.errors import AttributeAccessError


# struct formats for index elements, keyed by width in bytes
INDEX_FORMATS = {1: "<B", 2: "<H", 4: "<I"}


class Address:
    """A byte position inside the storage of one GPU buffer

    Addresses behave like pointers: adding an integer moves them, and reads are
    checked against the end of the storage they were taken from. Uploading new
    data to a buffer replaces its storage, so an address taken before the upload
    keeps pointing at the old bytes until the registry rebinds it.
    """

    __slots__ = ("buffer_id", "storage", "offset")

    def __init__(self, buffer_id, storage, offset=0):
        self.buffer_id = buffer_id
        self.storage = storage
        self.offset = offset

    def __add__(self, delta):
        return Address(self.buffer_id, self.storage, self.offset + int(delta))

    __radd__ = __add__

    def __eq__(self, other):
        if not isinstance(other, Address):
            return NotImplemented
        return self.storage is other.storage and self.offset == other.offset

    def __hash__(self):
        return hash((id(self.storage), self.offset))

    def __repr__(self):
        return f"Address(buffer={self.buffer_id}, offset={self.offset})"

    def fits(self, size):
        """Check if `size` bytes starting here lie inside the storage"""
        return 0 <= self.offset and self.offset + size <= len(self.storage)

    def _check(self, size):
        if not self.fits(size):
            raise AttributeAccessError(
                f"Read of {size} bytes at offset {self.offset} overruns buffer "
                f"{self.buffer_id} of {len(self.storage)} bytes")

    def read_floats(self, count):
        """Read little-endian 32-bit floats

        Args:
            count: Number of floats to read

        Returns:
            Fresh float32 numpy array of length `count`
        """
        self._check(count * 4)
        return np.frombuffer(self.storage, dtype="<f4", count=count, offset=self.offset).copy()

    def read_uint(self, width):
        """Read one little-endian unsigned integer of `width` bytes"""
        self._check(width)
        return struct.unpack_from(INDEX_FORMATS[width], self.storage, self.offset)[0]


class IndexBinding:
    """Index buffer attached to a vertex puller

    Indexing with an invocation number returns the vertex id stored at that
    position, decoded with the element width given at binding time.
    """

    def __init__(self, address, element_size):
        self.address = address
        self.element_size = element_size

    @property
    def buffer_id(self):
        return self.address.buffer_id

    def __getitem__(self, position):
        return (self.address + position * self.element_size).read_uint(self.element_size)

    def rebind(self, address):
        """Point the binding at new storage, keeping the element width"""
        self.address = address


class Buffer:
    """A GPU buffer: resizable byte storage plus the pullers that point into it"""

    def __init__(self, buffer_id):
        self.buffer_id = buffer_id
        self.data = bytearray()
        self.upload_count = 0

        # Back references used to refresh addresses after an upload
        self.indexing_pullers = set()   # puller ids using this buffer for indices
        self.attribute_heads = set()    # (puller id, attribute index) pairs

    @property
    def size(self):
        return len(self.data)

    def base_address(self):
        """Address of the first byte of the current storage"""
        return Address(self.buffer_id, self.data, 0)

    def upload(self, payload):
        # New storage object so stale addresses can be told apart from fresh ones
        self.data = bytearray(payload)
        self.upload_count += 1


class BufferMemory:
    """Owns every GPU buffer and hands out buffer ids"""

    def __init__(self):
        """Initialize an empty buffer table; ids start at 1 since 0 means no buffer"""
        self.logger = logging.getLogger("SoftGPU.Memory")

        self.buffers = {}
        self.next_id = EMPTY_BUFFER_ID + 1

        # Upload statistics
        self.upload_count = 0
        self.bytes_uploaded = 0

    def create(self, count):
        """Create `count` empty buffers

        Args:
            count: Number of buffers to create

        Returns:
            List of new buffer ids
        """
        ids = []
        for _ in range(count):
            buffer_id = self.next_id
            self.next_id += 1
            self.buffers[buffer_id] = Buffer(buffer_id)
            ids.append(buffer_id)

        self.logger.debug(f"Created buffers {ids}")
        return ids

    def get(self, buffer_id):
        """Look up a buffer, returning None for unknown ids"""
        return self.buffers.get(buffer_id)

    def write(self, buffer_id, size, data):
        """Replace the contents of a buffer with the first `size` bytes of `data`

        Args:
            buffer_id: Target buffer id
            size: Number of bytes to copy
            data: bytes-like object or numpy array with at least `size` bytes

        Returns:
            The updated Buffer, or None if the upload was rejected
        """
        buffer = self.buffers.get(buffer_id)
        if buffer is None:
            self.logger.error(f"Buffer data: unknown buffer {buffer_id}")
            return None

        if size < 0:
            self.logger.error(f"Buffer data: negative size {size} for buffer {buffer_id}")
            return None

        if isinstance(data, np.ndarray):
            payload = data.tobytes()
        else:
            payload = bytes(data)

        if len(payload) < size:
            self.logger.error(f"Buffer data: {size} bytes requested but only {len(payload)} given for buffer {buffer_id}")
            return None

        buffer.upload(payload[:size])
        self.upload_count += 1
        self.bytes_uploaded += size

        self.logger.debug(f"Uploaded {size} bytes to buffer {buffer_id}")
        return buffer

    def clear(self):
        """Drop every buffer"""
        self.buffers.clear()

    def get_stats(self):
        """Get buffer statistics"""
        return {
            "buffer_count": len(self.buffers),
            "total_bytes": sum(buffer.size for buffer in self.buffers.values()),
            "upload_count": self.upload_count,
            "bytes_uploaded": self.bytes_uploaded,
        }
