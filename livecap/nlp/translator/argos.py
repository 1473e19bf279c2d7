from __future__ import annotations
from .base import Translator
from livecap.contracts import TranslationRequest, TranslationResult
from livecap.errors import TransientBackendError

class ArgosTranslator(Translator):
    """Offline translation. Argos has no Khasi model, so 'kha' requests fail."""

    def __init__(self, from_code: str = "en", auto_install: bool = True):
        self.from_code = from_code
        self.auto_install = auto_install
        self._ready: set[str] = set()

    @property
    def name(self) -> str:
        return "argos"

    def _ensure_ready(self, to_code: str) -> None:
        if to_code in self._ready:
            return

        import argostranslate.package
        import argostranslate.translate

        installed = argostranslate.translate.get_installed_languages()
        have_from = any(l.code == self.from_code for l in installed)
        have_to = any(l.code == to_code for l in installed)

        if not (have_from and have_to):
            if not self.auto_install:
                raise TransientBackendError("Argos model not installed and auto_install=False")

            argostranslate.package.update_package_index()
            available = argostranslate.package.get_available_packages()

            pkg = None
            for p in available:
                if p.from_code == self.from_code and p.to_code == to_code:
                    pkg = p
                    break
            if pkg is None:
                raise TransientBackendError(f"No Argos package found for {self.from_code}->{to_code}")

            path = pkg.download()
            argostranslate.package.install_from_path(path)

        self._ready.add(to_code)

    def translate(self, req: TranslationRequest) -> TranslationResult:
        if req.target_lang == self.from_code:
            return TranslationResult(source_text=req.text, translated_text=req.text, provider=self.name)
        self._ensure_ready(req.target_lang)
        import argostranslate.translate
        out = argostranslate.translate.translate(req.text, self.from_code, req.target_lang)
        return TranslationResult(source_text=req.text, translated_text=out, provider=self.name)
