import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Ensure repository root is on sys.path so the in-tree package imports cleanly.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from edgeprobe.config import Settings  # noqa: E402

FIXED_NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


def fixed_clock() -> datetime:
    return FIXED_NOW


UNIT_SOURCES = {
    "_health": """\
/**
 * Health check endpoint
 */
Deno.serve((req) => {
  if (req.method === 'GET') {
    return new Response(JSON.stringify({ status: 'healthy' }))
  }
  return new Response('ok')
})
""",
    "lookup-barcode": """\
/**
 * @param barcode EAN-13 code
 */
Deno.serve(async (req) => {
  if (req.method === 'POST') {
    const { barcode } = await req.json()
    const res = await fetch(`https://world.openfoodfacts.org/api/v2/product/${barcode}`)
    await supabase.functions.invoke('enrich-barcode', { body: { barcode } })
    await fetch(`${url}/functions/v1/_health`)
    return new Response(await res.text())
  }
})
""",
    "list-users": """\
const admin = createClient(url, Deno.env.get('SUPABASE_SERVICE_ROLE_KEY'))
Deno.serve(async (req) => {
  if (req.method === 'GET') {
    return new Response(JSON.stringify(await admin.auth.admin.listUsers()))
  }
})
""",
    "ai-meal-plan": """\
Deno.serve(async (req) => {
  const jwt = req.headers.get('Authorization')
  const key = Deno.env.get('OPENAI_API_KEY')
  const res = await fetch('https://api.openai.com/v1/chat/completions', { headers: { key } })
  return new Response(await res.text())
})
""",
    "publish-scheduled-posts": """\
Deno.serve(async (req) => {
  const cronSecret = req.headers.get('x-cron-secret')
  return new Response('published')
})
""",
    "mystery-widget": """\
export default {}
""",
}


def write_unit(base: Path, name: str, content: str) -> Path:
    path = base / "supabase" / "functions" / name / "index.ts"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """A project tree with six functions plus a shared directory that is not a function."""
    for name, content in UNIT_SOURCES.items():
        write_unit(tmp_path, name, content)
    shared = tmp_path / "supabase" / "functions" / "_shared"
    shared.mkdir()
    (shared / "cors.ts").write_text("export const corsHeaders = {}\n", encoding="utf-8")
    return tmp_path


@pytest.fixture
def make_settings(project: Path):
    def _make(config: dict | None = None) -> Settings:
        return Settings(config or {}, base_dir=project)

    return _make


@pytest.fixture
def cfg(make_settings) -> Settings:
    return make_settings()
