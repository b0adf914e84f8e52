"""Oracle clients for the window controller."""

from markdown_pipeline.llm.azure_openai import AzureOpenAIClient
from markdown_pipeline.llm.client import FunctionCall, OracleClient, OracleResponse

__all__ = ["AzureOpenAIClient", "FunctionCall", "OracleClient", "OracleResponse"]
