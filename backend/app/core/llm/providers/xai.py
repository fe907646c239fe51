from app.core.llm.providers.openai import OpenAIProvider


class XaiProvider(OpenAIProvider):
    provider = "xai"

    def __init__(self, api_key: str, model: str):
        super().__init__(api_key=api_key, model=model, base_url="https://api.x.ai/v1")
