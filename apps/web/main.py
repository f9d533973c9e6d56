"""FastAPI web application for maintcost."""

from typing import Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from maintcost.analyzer import analyze_package, analyze_project
from maintcost.config import Settings
from maintcost.exceptions import ManifestError
from maintcost.parse_node import parse_package_json
from maintcost.reporting import package_to_dict, report_to_dict

app = FastAPI(
    title="maintcost",
    description="Predict maintenance cost and vulnerability risk of npm dependencies",
    version="0.1.0",
)


class AnalyzeRequest(BaseModel):
    """Request model for analyzing a package.json."""
    content: str
    include_dev: bool = False
    shallow: bool = False


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.post("/api/analyze")
async def analyze(request: AnalyzeRequest):
    """Analyze every dependency declared in package.json content."""
    content = request.content.strip()
    if not content:
        raise HTTPException(status_code=400, detail="No content provided")

    try:
        manifest = parse_package_json(content, include_dev=request.include_dev)
    except ManifestError as e:
        raise HTTPException(status_code=400, detail=e.message)

    try:
        report = await analyze_project(manifest, Settings.from_env(include_dev=request.include_dev), shallow=request.shallow)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error analyzing dependencies: {str(e)}")

    return report_to_dict(report)


@app.get("/api/packages/{name:path}")
async def check_package(name: str, version: Optional[str] = None, shallow: bool = False):
    """Analyze a single package, scoped names included."""
    try:
        result = await analyze_package(name, version, Settings.from_env(), shallow=shallow)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error analyzing package: {str(e)}")

    if not result.found:
        raise HTTPException(status_code=404, detail=f"Package {name} not found")

    return package_to_dict(result)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
