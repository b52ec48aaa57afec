from typing import Dict, List, Optional

from evaluator.config.provider_entry import ProviderEntry

DEFAULT_SAMPLING_INTERVAL = 0.1


class EvaluatorConfig:
    sampling_interval: float = DEFAULT_SAMPLING_INTERVAL
    enable_debug_output: bool = False
    gpu_probe: bool = True
    request_timeout: Optional[float] = None
    runs: int = 1
    output_dir: str = "reports"
    report_formats: List[str]
    prompts: List[str]
    providers: List[ProviderEntry]
    process_patterns: Dict[str, Dict[str, List[str]]]

    def __init__(self):
        self.report_formats = ["json"]
        self.prompts = []
        self.providers = []
        self.process_patterns = {}

    def provider(self, provider_id: str) -> Optional[ProviderEntry]:
        for entry in self.providers:
            if entry.id == provider_id:
                return entry
        return None

    def __repr__(self):
        return (f"EvaluatorConfig(\n"
                f"  sampling_interval={self.sampling_interval},\n"
                f"  enable_debug_output={self.enable_debug_output},\n"
                f"  gpu_probe={self.gpu_probe},\n"
                f"  request_timeout={self.request_timeout},\n"
                f"  runs={self.runs},\n"
                f"  output_dir={self.output_dir},\n"
                f"  report_formats={self.report_formats},\n"
                f"  providers={[p.id for p in self.providers]}\n"
                f")")
