"""Input renderer drivers."""

from deployrun.drivers.input_renderer.env_template import EnvTemplateRenderer, TempInputFile

__all__ = ["EnvTemplateRenderer", "TempInputFile"]
