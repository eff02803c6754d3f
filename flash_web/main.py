"""
Flash Web demo app.
POST /articles stores a notice and redirects; GET / shows it once (POST-redirect-GET).
Port 8000 by default.
"""
import html

from fastapi import Depends, FastAPI, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from flash_web.flash_map import FlashMap
from flash_web.middleware import FlashMiddleware, get_flash, invalidate_session
from flash_web.session import SessionStore

session_store = SessionStore()

app = FastAPI(title="Flash Web", version="0.1.0")
app.add_middleware(FlashMiddleware, store=session_store)

# Demo data only; lost on restart
_articles: list[str] = []


def _page(title: str, body: str, status_code: int = 200) -> HTMLResponse:
    return HTMLResponse(
        f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>{html.escape(title)}</title></head>
<body>
{body}
</body>
</html>""",
        status_code=status_code,
    )


@app.get("/health")
def health():
    """Health check endpoint."""
    return {"status": "ok", "service": "flash_web"}


@app.get("/", response_class=HTMLResponse)
def home(flash: FlashMap = Depends(get_flash)):
    """Article list. Shows (and thereby consumes) the notice or error left by the previous request."""
    messages = []
    notice = flash.get("notice")
    if notice:
        messages.append(f'<p class="notice">{html.escape(str(notice))}</p>')
    error = flash.get("error")
    if error:
        messages.append(f'<p class="error">{html.escape(str(error))}</p>')
    items = "".join(f"<li>{html.escape(a)}</li>" for a in _articles) or "<li>No articles yet</li>"
    return _page(
        "Articles",
        f"""  <h1>Articles</h1>
  {"".join(messages)}
  <ul>{items}</ul>
  <form method="post" action="/articles">
    <input type="text" name="title" placeholder="Title">
    <button type="submit">Create</button>
  </form>""",
    )


@app.post("/articles")
def create_article(title: str = Form(""), flash: FlashMap = Depends(get_flash)):
    """Create an article, flash the outcome, redirect to the list."""
    title = title.strip()
    if not title:
        flash["error"] = "Title is required."
    else:
        _articles.append(title)
        flash["notice"] = f"Article '{title}' created."
    return RedirectResponse(url="/", status_code=303)


@app.get("/articles/preview", response_class=HTMLResponse)
def preview_article(title: str = "", flash: FlashMap = Depends(get_flash)):
    """Preview without creating. The preview value is for this response only."""
    flash.put_now("preview", title.strip() or "(untitled)")
    return _page(
        "Preview",
        f"""  <h1>Preview</h1>
  <p>{html.escape(str(flash.get("preview")))}</p>
  <p><a href="/">Home</a></p>""",
    )


@app.post("/logout")
def logout(request: Request, flash: FlashMap = Depends(get_flash)):
    """End the session. The notice below is lost with it; the next request starts a new session."""
    flash["notice"] = "Logged out."
    invalidate_session(request)
    return RedirectResponse(url="/", status_code=303)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "flash_web.main:app",
        host="127.0.0.1",
        port=8000,
        reload=True,
    )
