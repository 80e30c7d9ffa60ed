# filterdir/models/options.py
# Purpose: Code-generation options handed to the external generator, with defaults.

from __future__ import annotations

import os
from typing import TYPE_CHECKING, Dict, List, Mapping, Optional

from pydantic import BaseModel, Field, model_validator

if TYPE_CHECKING:  # pragma: no cover
    from runtime.recorder import AccessRecorder


ENV_PREFIX = "FILTERDIR_"


class GeneratorOptions(BaseModel):
    """Options for code generation.

    Empty fields are never rejected; they are filled with defaults once the
    model is validated. ``filename`` and ``variable_comment`` derive from
    ``variable_name``, so they are filled after it.
    """

    filename: str = Field(
        default="",
        description="Generated source filename. Defaults to '{variable_name}_vfsdata.py' (lowercased).",
    )
    package_name: str = Field(default="", description="Package of the generated code. Defaults to 'main'.")
    build_tags: str = Field(
        default="", description="Build tags applied to the generated static data. Defaults to '!dev'."
    )
    variable_name: str = Field(
        default="", description="Name of the store variable in the generated code. Defaults to 'assets'."
    )
    variable_comment: str = Field(default="", description="Comment attached to the store variable.")
    list_file_name: str = Field(
        default="", description="Source file holding the include list. Defaults to 'assets_list.py'."
    )
    list_file_build_tags: str = Field(
        default="", description="Build tags applied to the include list source. Defaults to 'dev'."
    )

    @model_validator(mode="after")
    def _fill_missing(self) -> "GeneratorOptions":
        if not self.package_name:
            self.package_name = "main"
        if not self.variable_name:
            self.variable_name = "assets"
        if not self.filename:
            self.filename = f"{self.variable_name.lower()}_vfsdata.py"
        if not self.variable_comment:
            self.variable_comment = (
                f"{self.variable_name} statically implements the virtual filesystem "
                "provided to the generator."
            )
        if not self.list_file_name:
            self.list_file_name = "assets_list.py"
        if not self.build_tags:
            self.build_tags = "!dev"
        if not self.list_file_build_tags:
            self.list_file_build_tags = "dev"
        return self

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "GeneratorOptions":
        env = os.environ if environ is None else environ
        values: Dict[str, str] = {}
        for name in cls.model_fields:
            raw = env.get(ENV_PREFIX + name.upper(), "").strip()
            if raw:
                values[name] = raw
        return cls(**values)

    def generator_options(self) -> Dict[str, str]:
        """Fields consumed by the generator that bundles the filtered store."""
        return {
            "filename": self.filename,
            "package_name": self.package_name,
            "build_tags": self.build_tags,
            "variable_name": self.variable_name,
            "variable_comment": self.variable_comment,
        }


class ExportPayload(BaseModel):
    """Discovered paths plus the options the generator should run with."""

    files: List[str] = Field(default_factory=list)
    options: GeneratorOptions = Field(default_factory=GeneratorOptions)
    generator: Dict[str, str] = Field(
        default_factory=dict, description="Subset of options passed to the generator verbatim."
    )


async def build_export(
    recorder: "AccessRecorder", options: Optional[GeneratorOptions] = None
) -> ExportPayload:
    files = await recorder.snapshot()
    opts = options or GeneratorOptions()
    return ExportPayload(files=files, options=opts, generator=opts.generator_options())
