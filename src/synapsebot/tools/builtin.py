"""Built-in tool definitions."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field

from synapsebot.errors import ToolExecutionError
from synapsebot.tools.registry import ToolOutcome, ToolRegistry
from synapsebot.web.extractor import ContentExtractor, records_to_json
from synapsebot.web.search import WebSearcher

FILE_SUFFIX = ".txt"
FILE_CREATED_PREFIX = "File created successfully at"


class CreateFileInput(BaseModel):
    file_name: str = Field(
        ...,
        min_length=1,
        description="File name without the extension, for example: rust_book. The .txt extension is added.",
    )
    file_content: str = Field(..., min_length=1, description="Text content written to the file")


class ReadFileInput(BaseModel):
    file_name: str = Field(..., min_length=1, description="Name of the file to read")


class WebSearchInput(BaseModel):
    query: str = Field(..., description="The search query to execute on the web (returns top search results).")
    extract_websites: bool = Field(..., description="If true, data will be extracted from each top search result.")


class ExtractWebsitesInput(BaseModel):
    links: list[str] = Field(..., description="An array of links from which data needs to be extracted.")


def resolve_sandboxed(files_dir: Path, file_name: str) -> Path:
    """Resolve `file_name` inside `files_dir`, rejecting names that escape it."""
    root = files_dir.resolve()
    candidate = (root / file_name).resolve()
    if candidate == root or not candidate.is_relative_to(root):
        raise ToolExecutionError(f"invalid file name: {file_name}")
    return candidate


def register_builtin_tools(
    registry: ToolRegistry,
    *,
    files_dir: Path,
    extractor: ContentExtractor,
    searcher: WebSearcher,
) -> None:
    """Register the file tools and the web tools."""

    register = registry.register

    @register(
        name="create_file", short_description="Creates a file for given content and filename", model=CreateFileInput
    )
    def create_file(params: CreateFileInput) -> ToolOutcome:
        files_dir.mkdir(parents=True, exist_ok=True)
        file_path = resolve_sandboxed(files_dir, params.file_name + FILE_SUFFIX)
        try:
            file_path.write_text(params.file_content, encoding="utf-8")
        except OSError as exc:
            raise ToolExecutionError(f"failed to create file: {exc}") from exc
        return ToolOutcome(content=f"{FILE_CREATED_PREFIX} {file_path}", artifact=file_path)

    @register(name="read_file", short_description="Read content from a file", model=ReadFileInput)
    def read_file(params: ReadFileInput) -> str:
        file_path = resolve_sandboxed(files_dir, params.file_name)
        try:
            return file_path.read_text(encoding="utf-8")
        except (OSError, UnicodeError) as exc:
            raise ToolExecutionError(f"failed to read file: {exc}") from exc

    @register(
        name="web_search",
        short_description="Perform a web search and optionally extract data from top search results.",
        model=WebSearchInput,
    )
    async def web_search(params: WebSearchInput) -> str:
        return await searcher.run(params.query, extract_websites=params.extract_websites)

    @register(name="extract_websites", short_description="Extract data from given links.", model=ExtractWebsitesInput)
    async def extract_websites(params: ExtractWebsitesInput) -> str:
        records = await extractor.extract(params.links)
        return records_to_json(records)
