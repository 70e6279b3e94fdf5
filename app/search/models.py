from pydantic import BaseModel, Field


class SearchRequest(BaseModel):
    query: str = Field(min_length=1)


class SearchResultLink(BaseModel):
    title: str = ""
    url: str
    snippet: str = ""


class SearchResult(BaseModel):
    answer: str = ""
    results: list[SearchResultLink] = Field(default_factory=list)
