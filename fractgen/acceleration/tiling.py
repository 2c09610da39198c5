"""
Block-parallel rendering into a shared pixel buffer.

The image is cut into rectangular blocks that tile it exactly. Each block is
one job on a process pool; a job writes only into its own block of an RGBA
buffer held in shared memory, so workers never need a lock.
``TileScheduler.render`` returns once every job has finished.
"""

import logging
import os
import time
from concurrent.futures import Future, ProcessPoolExecutor, ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from multiprocessing import shared_memory
from typing import Dict, List, Optional, Tuple

import numpy as np

from ..core.fractal_types import FractalSpec
from ..core.math_functions import ViewWindow
from ..rendering.coloring import Palette, color_for, smooth_iteration_value

logger = logging.getLogger(__name__)

DEFAULT_BLOCK_SIZE = 64


@dataclass(frozen=True)
class ComputeBlock:
    """Rectangular region of the image handled by a single job."""

    start_x: int
    start_y: int
    width: int
    height: int

    @property
    def end_x(self) -> int:
        return self.start_x + self.width

    @property
    def end_y(self) -> int:
        return self.start_y + self.height

    @property
    def pixel_count(self) -> int:
        return self.width * self.height


def create_block_grid(width: int, height: int, block_size: int = DEFAULT_BLOCK_SIZE) -> List[ComputeBlock]:
    """
    Create a grid of blocks covering the image without gaps or overlap.

    Blocks on the right and bottom edges are clipped to the image.

    Args:
        width: Total image width
        height: Total image height
        block_size: Edge length of a full block (pixels)

    Returns:
        List of ComputeBlock objects in row-major order
    """
    if width <= 0 or height <= 0:
        raise ValueError("Width and height must be positive")
    if block_size <= 0:
        raise ValueError(f"block_size must be positive, got {block_size}")

    blocks = []
    for y in range(0, height, block_size):
        for x in range(0, width, block_size):
            blocks.append(ComputeBlock(
                start_x=x,
                start_y=y,
                width=min(block_size, width - x),
                height=min(block_size, height - y),
            ))

    logger.debug(f"Created {len(blocks)} blocks of target size {block_size}x{block_size}")
    return blocks


class PixelBuffer:
    """Pre-allocated row-major RGBA raster, 8 bits per channel.

    Passing ``buffer`` (e.g. a shared memory block) lays the raster over
    existing memory instead of allocating it.
    """

    def __init__(self, width: int, height: int, buffer=None):
        if width <= 0 or height <= 0:
            raise ValueError("Width and height must be positive")
        self.width = width
        self.height = height
        if buffer is None:
            self.pixels = np.zeros((height, width, 4), dtype=np.uint8)
        else:
            self.pixels = np.ndarray((height, width, 4), dtype=np.uint8, buffer=buffer)

    @property
    def shape(self) -> Tuple[int, int]:
        return self.height, self.width

    def region(self, block: ComputeBlock) -> np.ndarray:
        """Writable view onto the part of the raster owned by ``block``."""
        if block.start_x < 0 or block.start_y < 0 or block.end_x > self.width or block.end_y > self.height:
            raise ValueError(f"Block {block} lies outside the {self.width}x{self.height} buffer")
        return self.pixels[block.start_y:block.end_y, block.start_x:block.end_x]

    def get_pixel(self, x: int, y: int) -> Tuple[int, int, int, int]:
        return tuple(int(c) for c in self.pixels[y, x])

    def to_bytes(self) -> bytes:
        """Raw row-major RGBA bytes."""
        return self.pixels.tobytes()

    def copy(self) -> "PixelBuffer":
        """Independent buffer with its own memory and the same pixels."""
        clone = PixelBuffer(self.width, self.height)
        clone.pixels[:] = self.pixels
        return clone

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PixelBuffer):
            return NotImplemented
        return self.shape == other.shape and np.array_equal(self.pixels, other.pixels)

    __hash__ = None

    def __repr__(self) -> str:
        return f"PixelBuffer({self.width}x{self.height})"


def render_block(block: ComputeBlock, buffer: PixelBuffer, fractal: FractalSpec,
                 view: ViewWindow, palette: Palette) -> float:
    """
    Compute and color every pixel of one block.

    Returns:
        Seconds spent on the block
    """
    start_time = time.perf_counter()

    region = buffer.region(block)
    numbers = view.numbers
    max_iterations = fractal.max_iterations
    bailout = float(fractal.bailout)

    for row in range(block.height):
        y = block.start_y + row
        colors = []
        for x in range(block.start_x, block.end_x):
            cx, cy = view.pixel_to_complex(x, y)
            result = fractal.iterate(cx, cy, numbers)
            value = smooth_iteration_value(result, max_iterations, bailout)
            colors.append(color_for(value, palette, max_iterations))
        region[row] = colors

    return time.perf_counter() - start_time


def get_optimal_worker_count() -> int:
    """Twice the available hardware parallelism."""
    return 2 * (os.cpu_count() or 1)


# State of a pool worker process: the shared arena it writes blocks into.
_worker_memory: Optional[shared_memory.SharedMemory] = None
_worker_buffer: Optional[PixelBuffer] = None


def _attach_shared_buffer(name: str, width: int, height: int):
    """Pool initializer: map the render's shared arena into this process."""
    global _worker_memory, _worker_buffer
    _worker_memory = shared_memory.SharedMemory(name=name)
    _worker_buffer = PixelBuffer(width, height, _worker_memory.buf)


def _render_shared_block(block: ComputeBlock, fractal: FractalSpec,
                         view: ViewWindow, palette: Palette) -> float:
    return render_block(block, _worker_buffer, fractal, view, palette)


class TileScheduler:
    """Pool scheduler rendering one block per job into a shared buffer.

    With the default ``"process"`` executor the buffer lives in shared memory
    and blocks run on a ``ProcessPoolExecutor``, so pixels are computed in
    parallel despite the GIL. ``"thread"`` keeps every job in this process.
    """

    executors = ("process", "thread")

    def __init__(self, max_workers: Optional[int] = None, block_size: int = DEFAULT_BLOCK_SIZE,
                 executor: str = "process"):
        """
        Initialize the scheduler.

        Args:
            max_workers: Number of worker processes or threads (None for 2x CPU count)
            block_size: Edge length of the square blocks
            executor: ``"process"`` or ``"thread"``
        """
        if block_size <= 0:
            raise ValueError(f"block_size must be positive, got {block_size}")
        if executor not in self.executors:
            raise ValueError(f"Unknown executor '{executor}'. Use one of: {', '.join(self.executors)}")
        if max_workers is None:
            self.max_workers = get_optimal_worker_count()
        else:
            self.max_workers = max(1, max_workers)
        self.block_size = block_size
        self.executor = executor

    def render(self, fractal: FractalSpec, view: ViewWindow, palette: Palette) -> PixelBuffer:
        """
        Render a fractal view into a new pixel buffer.

        Inputs are validated on construction, so nothing here can fail half
        way for bad parameters. Blocks until every block is done; an
        unexpected worker exception is re-raised to the caller.

        Args:
            fractal: Fractal to compute
            view: Window onto the complex plane and image size
            palette: Palette used to color escaped points

        Returns:
            The completed PixelBuffer
        """
        start_time = time.perf_counter()

        blocks = create_block_grid(view.image_width, view.image_height, self.block_size)
        workers = min(self.max_workers, len(blocks))

        logger.info(f"Rendering {fractal.name}: {view.describe(digits=12)}, "
                    f"{len(blocks)} blocks on {workers} {self.executor} workers")

        if self.executor == "thread":
            buffer = PixelBuffer(view.image_width, view.image_height)
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="fractgen") as executor:
                futures = {
                    executor.submit(render_block, block, buffer, fractal, view, palette): block
                    for block in blocks
                }
                busy_time = self._wait_for_blocks(futures)
        else:
            buffer, busy_time = self._render_shared(blocks, workers, fractal, view, palette)

        total_time = time.perf_counter() - start_time
        logger.info(f"Render complete: {total_time:.2f}s total, {busy_time:.2f}s block time")
        return buffer

    def _render_shared(self, blocks: List[ComputeBlock], workers: int, fractal: FractalSpec,
                       view: ViewWindow, palette: Palette) -> Tuple[PixelBuffer, float]:
        width, height = view.image_width, view.image_height
        memory = shared_memory.SharedMemory(create=True, size=width * height * 4)
        arena = PixelBuffer(width, height, memory.buf)
        try:
            with ProcessPoolExecutor(max_workers=workers, initializer=_attach_shared_buffer,
                                     initargs=(memory.name, width, height)) as executor:
                futures = {
                    executor.submit(_render_shared_block, block, fractal, view, palette): block
                    for block in blocks
                }
                busy_time = self._wait_for_blocks(futures)
            buffer = arena.copy()
        finally:
            # The segment only closes once no array views onto it remain.
            arena = None
            memory.close()
            memory.unlink()
        return buffer, busy_time

    def _wait_for_blocks(self, futures: Dict[Future, ComputeBlock]) -> float:
        """Barrier over all block jobs; returns the summed block time."""
        busy_time = 0.0
        completed = 0
        total = len(futures)
        report_every = max(1, total // 10)
        for future in as_completed(futures):
            try:
                busy_time += future.result()
            except Exception:
                logger.error(f"Block {futures[future]} failed")
                for pending in futures:
                    pending.cancel()
                raise

            completed += 1
            if completed % report_every == 0:
                logger.debug(f"Completed {completed}/{total} blocks ({100.0 * completed / total:.1f}%)")
        return busy_time
