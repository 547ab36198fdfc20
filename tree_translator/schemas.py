from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional, Union
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class GithubJobSubmission(CamelModel):
    repo_url: str = Field(..., description="Public https://github.com/<owner>/<repo> URL")
    translator: str = Field("openai", description="Translator provider (openai, gemini, local)")
    model: Optional[str] = Field(None, description="Provider model; the provider default when empty")
    target_language: Optional[str] = Field(None, description="Language to translate into")
    output_folder: Optional[str] = Field(None, description="Folder name or absolute path for the output")
    allowed_extensions: Optional[Union[str, List[str]]] = Field(
        None, description="Extensions to translate, as a list or comma-separated string"
    )


class JobAction(BaseModel):
    action: str = Field(..., description="Only 'cancel' is supported")


class CredentialsUpdate(CamelModel):
    openai_api_key: Optional[str] = None
    gemini_api_key: Optional[str] = None
