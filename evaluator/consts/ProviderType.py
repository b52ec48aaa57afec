from enum import Enum


class ProviderType(Enum):
    AZURE_FOUNDRY_LOCAL = "azure-foundry-local"
    LOCAL = "local"
    OPENAI = "openai"
    OPENAI_DEMO = "openai-demo"
    GENERIC = "generic"
    UNKNOWN = "unknown"
