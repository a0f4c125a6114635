import logging

import pygame

from raycore.errors import ImageWriteError
from raycore.image_io import save_image, to_surface

logger = logging.getLogger(__name__)


class ImageViewer:
    """Shows a finished frame in a PyGame window"""

    def __init__(self, image, stats=None, save_path="render.png", title="raycore"):
        pygame.init()
        self.image = image
        self.height, self.width = image.shape[:2]
        self.stats = stats
        self.save_path = save_path
        self.screen = pygame.display.set_mode((self.width, self.height))
        pygame.display.set_caption(f"{title} - {self.width}x{self.height}  S: save  Esc: quit")
        self.clock = pygame.time.Clock()
        self.font = pygame.font.SysFont(None, 24)
        self.frame = to_surface(image)
        self.show_hud = True
        self.running = True

    def overlay_lines(self):
        lines = [f"Resolution: {self.width}x{self.height}"]
        if self.stats is not None:
            lines.append(f"Render time: {self.stats.seconds:.2f}s")
            lines.append(f"Rays: {self.stats.rays_traced}")
        lines.append("S: save  H: overlay  Esc: quit")
        return lines

    def handle_events(self):
        """Handle PyGame events"""
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                self.running = False
            elif event.type == pygame.KEYDOWN:
                if event.key == pygame.K_ESCAPE:
                    self.running = False
                elif event.key == pygame.K_h:
                    self.show_hud = not self.show_hud
                elif event.key == pygame.K_s:
                    try:
                        save_image(self.image, self.save_path)
                    except ImageWriteError as exc:
                        logger.error("%s", exc)

    def draw(self):
        self.screen.blit(self.frame, (0, 0))
        if not self.show_hud:
            return
        for i, text in enumerate(self.overlay_lines()):
            text_surf = self.font.render(text, True, (255, 255, 255))
            # Text background for readability
            bg_rect = text_surf.get_rect()
            bg_rect.x = 10
            bg_rect.y = 10 + i * 25
            pygame.draw.rect(self.screen, (0, 0, 0), bg_rect.inflate(10, 5))
            self.screen.blit(text_surf, (15, 12 + i * 25))

    def run(self):
        """Event loop until the window is closed"""
        while self.running:
            self.handle_events()
            self.draw()
            pygame.display.flip()
            self.clock.tick(30)
        pygame.quit()
