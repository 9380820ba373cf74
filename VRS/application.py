"""
Preview application for foveated VRS density maps.

Provides a pygame window where the mouse position acts as the gaze focus
and the generated density map is shown, colourised, in real time.
"""

import sys
import logging
import time
from pathlib import Path
from typing import List, Optional, Tuple, Union
from dataclasses import dataclass
from enum import Enum, auto

import numpy as np

try:
    import pygame
    PYGAME_AVAILABLE = True
except ImportError:
    PYGAME_AVAILABLE = False

from .backend import InMemoryBackend
from .config import VRSConfig, create_default_config
from .texture_cache import VRSTextureCache
from .utils import density_to_rgb, pixel_to_ndc, tile_horizontally, upscale_nearest

logger = logging.getLogger(__name__)

# Horizontal distance between the two eye foci in stereo mode, in NDC.
STEREO_FOCUS_OFFSET = 0.1


class AppState(Enum):
    """Application state enumeration."""
    INITIALIZING = auto()
    RUNNING = auto()
    STOPPED = auto()


@dataclass
class AppStats:
    """Runtime statistics for the application."""
    frame_count: int = 0
    regenerations: int = 0
    total_generate_time: float = 0.0
    last_generate_time: float = 0.0

    def update(self, generate_time: float, regenerated: bool) -> None:
        """Update statistics with new frame data."""
        self.frame_count += 1
        self.total_generate_time += generate_time
        self.last_generate_time = generate_time
        if regenerated:
            self.regenerations += 1

    @property
    def reuse_ratio(self) -> float:
        if self.frame_count == 0:
            return 0.0
        return 1.0 - self.regenerations / self.frame_count


def eye_foci_for(focus: Tuple[float, float], stereo: bool) -> List[Tuple[float, float]]:
    """
    Build the per-view focus list for a single gaze point.

    In stereo mode each eye looks slightly inwards of its own view centre.
    """
    if not stereo:
        return [focus]
    fx, fy = focus
    return [(fx + STEREO_FOCUS_OFFSET, fy), (fx - STEREO_FOCUS_OFFSET, fy)]


class VRSPreviewApp:
    """
    Interactive density map viewer.

    Owns a VRSTextureCache backed by an InMemoryBackend so the uploaded
    texture can be read back and displayed.
    """

    def __init__(self,
                 config: Optional[VRSConfig] = None,
                 target_size: Tuple[int, int] = (1280, 720),
                 texel_size: Tuple[int, int] = (8, 8),
                 stereo: bool = False):
        """
        Initialize the preview application.

        Args:
            config: Foveation configuration (uses defaults if None).
            target_size: Render target size the map is generated for; also
                the window size.
            texel_size: Shading-rate tile size the backend reports.
            stereo: Generate a two-layer map instead of a single one.
        """
        self.config = config or create_default_config()
        self.target_size = tuple(target_size)
        self.stereo = stereo
        self.state = AppState.INITIALIZING
        self.stats = AppStats()

        self.backend = InMemoryBackend(texel_size=texel_size)
        self.cache = VRSTextureCache(self.backend, self.config)
        self.focus: Tuple[float, float] = (0.0, 0.0)

        self._screen = None
        self._clock = None
        self._surface = None
        self._focus_locked = False
        self._show_debug = False

        logger.info("VRSPreviewApp initialized")

    def render_single_frame(self, focus: Optional[Tuple[float, float]] = None) -> np.ndarray:
        """
        Generate the density map for a focus point and return it as an RGB
        image at target size. Needs no window.

        Args:
            focus: Gaze point in normalized device coordinates; keeps the
                current focus if None.

        Returns:
            uint8 array of shape (height, width * views, 3).
        """
        if focus is not None:
            self.focus = focus

        regenerations = self.cache.regenerations
        start_time = time.perf_counter()
        handle = self.cache.generate(self.target_size, eye_foci_for(self.focus, self.stereo))
        self.stats.update(time.perf_counter() - start_time,
                          self.cache.regenerations != regenerations)

        layers = self.backend.texture_data(handle)
        width, height = self.target_size
        views = [upscale_nearest(density_to_rgb(layer), width, height) for layer in layers]
        return tile_horizontally(views, gap=4)

    def save_frame(self, path: Union[str, Path], focus: Optional[Tuple[float, float]] = None) -> Path:
        """
        Render one frame and write it to an image file.

        Raises:
            RuntimeError: If pygame is not installed.
        """
        if not PYGAME_AVAILABLE:
            raise RuntimeError("pygame is required for saving images")

        path = Path(path)
        image = self.render_single_frame(focus)
        surface = pygame.surfarray.make_surface(np.transpose(image, (1, 0, 2)))
        pygame.image.save(surface, str(path))
        logger.info(f"Saved density map to {path}")
        return path

    def _init_pygame(self) -> None:
        """Initialize pygame and create the window."""
        pygame.init()
        pygame.display.set_caption("VRS density map - move the mouse to set the gaze focus")

        views = 2 if self.stereo else 1
        width, height = self.target_size
        self._screen = pygame.display.set_mode((width * views + 4 * (views - 1), height))
        self._clock = pygame.time.Clock()

        logger.info(f"Pygame initialized: {width}x{height}, {views} view(s)")

    def _render_frame(self) -> None:
        image = self.render_single_frame()
        self._surface = pygame.surfarray.make_surface(np.transpose(image, (1, 0, 2)))

    def _draw_debug_overlay(self) -> None:
        """Draw debug information overlay."""
        if not self._show_debug or self._screen is None:
            return

        font = pygame.font.Font(None, 24)
        map_size = self.cache.state.last_map_size
        lines = [
            f"Focus: {self.focus[0]:+.2f}, {self.focus[1]:+.2f}",
            f"Map: {map_size[0]}x{map_size[1]}" if map_size else "Map: none",
            f"Min radius: {self.config.min_radius:.0f}",
            f"Strength: {self.config.strength:.1f}",
            f"Generate: {self.stats.last_generate_time * 1000:.2f}ms",
            f"Reused: {self.stats.reuse_ratio * 100:.0f}%",
            f"Locked: {self._focus_locked}",
            "",
            "Controls:",
            "+/- - Strength",
            "[/] - Min radius",
            "S - Toggle stereo",
            "Space - Lock focus",
            "D - Debug overlay",
            "ESC - Quit",
        ]

        overlay_height = len(lines) * 22 + 10
        overlay_surface = pygame.Surface((220, overlay_height))
        overlay_surface.set_alpha(180)
        overlay_surface.fill((0, 0, 0))
        self._screen.blit(overlay_surface, (10, 10))

        y_offset = 15
        for line in lines:
            text_surface = font.render(line, True, (255, 255, 255))
            self._screen.blit(text_surface, (15, y_offset))
            y_offset += 22

    def _toggle_stereo(self) -> None:
        self.stereo = not self.stereo
        width, height = self.target_size
        views = 2 if self.stereo else 1
        self._screen = pygame.display.set_mode((width * views + 4 * (views - 1), height))

    def _handle_events(self) -> bool:
        """
        Handle pygame events.

        Returns:
            False if application should quit, True otherwise.
        """
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                return False

            elif event.type == pygame.KEYDOWN:
                if event.key == pygame.K_ESCAPE:
                    return False
                elif event.key in (pygame.K_PLUS, pygame.K_EQUALS, pygame.K_KP_PLUS):
                    self.cache.set_strength(self.config.strength + 0.1)
                elif event.key in (pygame.K_MINUS, pygame.K_KP_MINUS):
                    self.cache.set_strength(self.config.strength - 0.1)
                elif event.key == pygame.K_RIGHTBRACKET:
                    self.cache.set_min_radius(self.config.min_radius + 5.0)
                elif event.key == pygame.K_LEFTBRACKET:
                    self.cache.set_min_radius(self.config.min_radius - 5.0)
                elif event.key == pygame.K_s:
                    self._toggle_stereo()
                elif event.key == pygame.K_SPACE:
                    self._focus_locked = not self._focus_locked
                    logger.debug(f"Focus lock: {self._focus_locked}")
                elif event.key == pygame.K_d:
                    self._show_debug = not self._show_debug

        if not self._focus_locked and pygame.mouse.get_focused():
            mx, my = pygame.mouse.get_pos()
            # Map the mouse into the first view
            self.focus = pixel_to_ndc(mx % self.target_size[0], my, self.target_size)

        return True

    def run(self) -> None:
        """
        Run the main application loop.

        This method blocks until the application is closed.
        """
        if not PYGAME_AVAILABLE:
            raise RuntimeError(
                "pygame is required for the application. "
                "Install with: pip install pygame"
            )

        try:
            self._init_pygame()
            self.state = AppState.RUNNING
            logger.info("Application started")

            running = True
            while running:
                running = self._handle_events()
                self._render_frame()

                if self._surface and self._screen:
                    self._screen.blit(self._surface, (0, 0))
                    self._draw_debug_overlay()
                    pygame.display.flip()

                self._clock.tick(60)

        except Exception as e:
            logger.error(f"Application error: {e}", exc_info=True)
            raise

        finally:
            self.state = AppState.STOPPED
            self.cache.release()
            pygame.quit()
            logger.info("Application stopped")


def parse_args(argv: Optional[List[str]] = None):
    """Parse command line arguments."""
    import argparse
    parser = argparse.ArgumentParser(
        description='Foveated VRS density map preview'
    )
    parser.add_argument(
        '--width', '-W',
        type=int,
        default=1280,
        help='Render target width (default: 1280)'
    )
    parser.add_argument(
        '--height', '-H',
        type=int,
        default=720,
        help='Render target height (default: 720)'
    )
    parser.add_argument(
        '--texel-size', '-t',
        type=int,
        nargs=2,
        default=(8, 8),
        metavar=('TX', 'TY'),
        help='Shading-rate tile size reported by the backend (default: 8 8)'
    )
    parser.add_argument(
        '--min-radius', '-r',
        type=float,
        default=20.0,
        help='Full-detail radius in percent of the map (default: 20)'
    )
    parser.add_argument(
        '--strength', '-s',
        type=float,
        default=1.0,
        help='Density ramp strength (default: 1.0)'
    )
    parser.add_argument(
        '--region',
        type=int,
        nargs=4,
        metavar=('X', 'Y', 'W', 'H'),
        help='Render only this sub-region of the target'
    )
    parser.add_argument(
        '--stereo',
        action='store_true',
        help='Generate a two-layer map, one per eye'
    )
    parser.add_argument(
        '--save',
        type=str,
        metavar='PATH',
        help='Save a single frame focused on the centre to PATH and exit'
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the application."""
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    args = parse_args(argv)

    config = VRSConfig(
        min_radius=args.min_radius,
        strength=args.strength,
        render_region=args.region,
    )
    app = VRSPreviewApp(
        config=config,
        target_size=(args.width, args.height),
        texel_size=tuple(args.texel_size),
        stereo=args.stereo,
    )

    if args.save:
        app.save_frame(args.save, focus=(0.0, 0.0))
        app.cache.release()
        return

    app.run()


if __name__ == '__main__':
    sys.exit(main())
