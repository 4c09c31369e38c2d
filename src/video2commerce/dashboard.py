"""HTML pages for the review dashboard; all data is fetched from the JSON API."""

from __future__ import annotations

import html
import json
from typing import Any, Dict, Optional

NOTICES = {
    "missing-parameters": "Missing required parameters. Start from Process Video to review products.",
    "signed-out": "You have been signed out.",
    "session-expired": "Your session expired. Sign in again.",
}


def _json_for_script_tag(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False).replace("</", "<\\/")


def _layout(*, title: str, body: str, script: str, bootstrap: Dict[str, Any]) -> str:
    bootstrap_json = _json_for_script_tag(bootstrap)
    safe_title = html.escape(title)
    return f"""<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1" />
  <title>{safe_title} · Video2Commerce</title>
  <style>
    :root {{
      --paper: #f7f5fb;
      --card: #ffffff;
      --ink: #1d1630;
      --muted: rgba(29, 22, 48, 0.62);
      --stroke: rgba(29, 22, 48, 0.12);
      --accent: #7c3aed;
      --ok: #16a34a;
      --bad: #dc2626;
      --radius: 14px;
      --sans: "Inter", "Segoe UI", system-ui, sans-serif;
      --mono: "Cascadia Mono", "Consolas", monospace;
    }}
    * {{ box-sizing: border-box; }}
    body {{ margin: 0; color: var(--ink); font-family: var(--sans); background: var(--paper); }}
    a {{ color: var(--accent); }}
    .wrap {{ max-width: 1280px; margin: 0 auto; padding: 22px 16px 96px; }}
    .mast {{ display: flex; justify-content: space-between; align-items: center; gap: 12px; }}
    .mast h1 {{ margin: 0; font-size: 30px; }}
    .mast nav {{ display: flex; gap: 12px; align-items: center; font-size: 14px; }}
    .panel {{
      background: var(--card); border: 1px solid var(--stroke); border-radius: var(--radius);
      padding: 16px 18px; margin-top: 16px; box-shadow: 0 10px 30px rgba(29, 22, 48, 0.06);
    }}
    .panel h2 {{ margin: 0 0 10px; font-size: 15px; text-transform: uppercase; letter-spacing: 0.6px; }}
    .grid {{ display: grid; grid-template-columns: 2fr 1fr; gap: 16px; }}
    @media (max-width: 900px) {{ .grid {{ grid-template-columns: 1fr; }} }}
    label {{ display: block; font-size: 12px; color: var(--muted); margin: 10px 0 6px; }}
    input[type="text"], input[type="password"], input[type="number"], textarea {{
      width: 100%; border: 1px solid var(--stroke); border-radius: 10px; padding: 10px 12px;
      font-family: var(--sans); font-size: 14px;
    }}
    textarea {{ min-height: 90px; resize: vertical; }}
    button {{
      appearance: none; border: none; border-radius: 10px; cursor: pointer; padding: 9px 13px;
      font-weight: 650; color: #fff; background: var(--accent);
    }}
    button[disabled] {{ opacity: 0.45; cursor: not-allowed; }}
    button.ghost {{ background: transparent; color: var(--ink); border: 1px solid var(--stroke); }}
    button.ok {{ background: var(--ok); }}
    button.bad {{ background: var(--bad); }}
    .row {{ display: flex; gap: 8px; align-items: center; flex-wrap: wrap; }}
    .status {{ font-size: 13px; color: var(--muted); margin-left: auto; }}
    .status.error {{ color: var(--bad); }}
    .notice {{
      margin-top: 14px; padding: 10px 14px; border-radius: 10px;
      background: #fef3c7; border: 1px solid #fcd34d; font-size: 14px;
    }}
    .counts {{ display: grid; grid-template-columns: repeat(3, 1fr); gap: 8px; }}
    .count {{ border-radius: 10px; padding: 10px; background: #f3e8ff; }}
    .count.approved {{ background: #dcfce7; }}
    .count.rejected {{ background: #fee2e2; }}
    .count .k {{ font-size: 12px; color: var(--muted); }}
    .count .v {{ font-size: 24px; font-weight: 700; }}
    .bar {{ height: 8px; background: #eee; border-radius: 99px; overflow: hidden; margin-top: 6px; }}
    .bar > div {{ height: 100%; background: var(--accent); }}
    .tabs {{ display: grid; grid-template-columns: repeat(4, 1fr); gap: 6px; margin-top: 16px; }}
    .tabs button {{ background: #ede9fe; color: var(--ink); }}
    .tabs button.active {{ background: var(--card); border: 1px solid var(--accent); }}
    .cards {{ display: grid; grid-template-columns: repeat(auto-fill, minmax(280px, 1fr)); gap: 14px; margin-top: 14px; }}
    .card {{ background: var(--card); border: 1px solid var(--stroke); border-radius: var(--radius); overflow: hidden; }}
    .card.selected {{ outline: 2px solid var(--accent); outline-offset: 2px; }}
    .card .thumb {{ position: relative; aspect-ratio: 16 / 9; background: #ececf3; }}
    .card .thumb img {{ width: 100%; height: 100%; object-fit: cover; }}
    .card .thumb .tl, .card .thumb .tr, .card .thumb .bl, .card .thumb .br {{ position: absolute; }}
    .card .thumb .tl {{ top: 8px; left: 8px; }}
    .card .thumb .tr {{ top: 8px; right: 8px; }}
    .card .thumb .bl {{ bottom: 8px; left: 8px; }}
    .card .thumb .br {{ bottom: 8px; right: 8px; }}
    .card .content {{ padding: 12px; }}
    .card h3 {{ margin: 0 0 4px; font-size: 16px; }}
    .card p {{ margin: 6px 0; font-size: 13px; color: var(--muted); }}
    .badge {{
      display: inline-block; font-size: 11px; border-radius: 99px; padding: 3px 8px;
      background: rgba(0, 0, 0, 0.6); color: #fff;
    }}
    .badge.pending {{ background: var(--accent); }}
    .badge.approved {{ background: var(--ok); }}
    .badge.rejected {{ background: var(--bad); }}
    .badge.staged {{ background: #f59e0b; }}
    .pending-bar {{
      position: fixed; left: 50%; bottom: 16px; transform: translateX(-50%);
      background: var(--card); border: 1px solid var(--stroke); border-radius: 12px;
      box-shadow: 0 18px 40px rgba(29, 22, 48, 0.18); padding: 12px 16px;
      display: none; gap: 16px; align-items: center; z-index: 20;
    }}
    .pending-bar.visible {{ display: flex; }}
    .pending-bar small {{ display: block; color: var(--muted); }}
    dialog {{ border: none; border-radius: var(--radius); padding: 18px; width: min(720px, 92vw); }}
    dialog::backdrop {{ background: rgba(0, 0, 0, 0.45); }}
    iframe {{ width: 100%; aspect-ratio: 16 / 9; border: 0; border-radius: 10px; }}
    .chips {{ display: flex; gap: 8px; flex-wrap: wrap; margin-top: 8px; }}
    .empty {{ text-align: center; padding: 40px; color: var(--muted); }}
    code {{ font-family: var(--mono); }}
  </style>
</head>
<body>
  <div class="wrap">
{body}
  </div>
  <script id="page-bootstrap" type="application/json">{bootstrap_json}</script>
  <script>
    const bootstrap = JSON.parse(document.getElementById("page-bootstrap").textContent);
    const el = (id) => document.getElementById(id);
    const esc = (v) => String(v ?? "").replace(/[&<>"']/g, (c) => ({{
      "&": "&amp;", "<": "&lt;", ">": "&gt;", '"': "&quot;", "'": "&#39;"
    }})[c]);

    async function api(method, url, body) {{
      const opts = {{ method, headers: {{ "Accept": "application/json" }} }};
      if (body !== undefined) {{
        opts.headers["Content-Type"] = "application/json";
        opts.body = JSON.stringify(body);
      }}
      const resp = await fetch(url, opts);
      const text = await resp.text();
      let data = null;
      try {{ data = text ? JSON.parse(text) : null; }} catch {{
        throw new Error(`HTTP ${{resp.status}}: ${{text}}`);
      }}
      if (resp.status === 401 && !bootstrap.auth_page) {{
        window.location.href = "/login?notice=session-expired";
        throw new Error("Sign in required.");
      }}
      if (!resp.ok) {{
        const detail = (data && (data.detail || data.message)) || resp.statusText;
        const err = new Error(typeof detail === "string" ? detail : JSON.stringify(detail));
        err.status = resp.status;
        err.code = data && data.code;
        throw err;
      }}
      return data;
    }}
{script}
  </script>
</body>
</html>
"""


def _notice_html(notice: Optional[str]) -> str:
    message = NOTICES.get(notice or "")
    if not message:
        return ""
    return f'    <div class="notice" id="notice">{html.escape(message)}</div>\n'


_NAV = """    <div class="mast">
      <h1>{title}</h1>
      <nav>
        <a href="/process">Process video</a>
        <span id="whoami"></span>
        <button class="ghost" id="logoutBtn" type="button">Sign out</button>
      </nav>
    </div>
"""

_NAV_SCRIPT = """
    el("whoami").textContent = bootstrap.user_label || "";
    el("logoutBtn").addEventListener("click", async () => {
      try { await api("POST", "/api/auth/logout"); } finally {
        window.location.href = "/login?notice=signed-out";
      }
    });
"""


def render_login_page(*, notice: Optional[str] = None) -> str:
    body = (
        """    <div class="mast"><h1>Sign in</h1></div>
"""
        + _notice_html(notice)
        + """    <section class="panel" style="max-width: 420px;">
      <form id="loginForm">
        <label for="username">Username or email</label>
        <input id="username" type="text" autocomplete="username" required />
        <label for="password">Password</label>
        <input id="password" type="password" autocomplete="current-password" required />
        <div class="row" style="margin-top: 14px;">
          <button id="loginBtn" type="submit">Sign in</button>
          <span class="status" id="status"></span>
        </div>
      </form>
      <p style="font-size: 13px;">No account yet? <a href="/signup">Create one</a></p>
    </section>
"""
    )
    script = """
    el("loginForm").addEventListener("submit", async (ev) => {
      ev.preventDefault();
      const status = el("status");
      el("loginBtn").disabled = true;
      status.className = "status";
      status.textContent = "Signing in…";
      try {
        await api("POST", "/api/auth/login", {
          username: el("username").value.trim(),
          password: el("password").value,
        });
        window.location.href = "/process";
      } catch (e) {
        status.className = "status error";
        status.textContent = e.message;
      } finally {
        el("loginBtn").disabled = false;
      }
    });
"""
    return _layout(
        title="Sign in", body=body, script=script, bootstrap={"auth_page": True}
    )


def render_signup_page() -> str:
    body = """    <div class="mast"><h1>Create account</h1></div>
    <section class="panel" style="max-width: 480px;">
      <form id="signupForm">
        <label for="email">Email</label>
        <input id="email" type="text" autocomplete="email" required />
        <label for="username">Username (optional)</label>
        <input id="username" type="text" autocomplete="username" />
        <label for="password">Password</label>
        <input id="password" type="password" autocomplete="new-password" required />
        <label for="siteTitle">Store name</label>
        <input id="siteTitle" type="text" required />
        <label for="siteUrl">Store URL</label>
        <input id="siteUrl" type="text" placeholder="https://your-store.com" required />
        <div class="row" style="margin-top: 14px;">
          <button id="signupBtn" type="submit">Create account</button>
          <span class="status" id="status"></span>
        </div>
      </form>
      <p style="font-size: 13px;">Already registered? <a href="/login">Sign in</a></p>
    </section>
"""
    script = """
    el("signupForm").addEventListener("submit", async (ev) => {
      ev.preventDefault();
      const status = el("status");
      el("signupBtn").disabled = true;
      status.className = "status";
      status.textContent = "Creating account…";
      try {
        await api("POST", "/api/auth/signup", {
          email: el("email").value.trim(),
          username: el("username").value.trim() || null,
          password: el("password").value,
          site_title: el("siteTitle").value.trim(),
          site_url: el("siteUrl").value.trim(),
        });
        window.location.href = "/process";
      } catch (e) {
        status.className = "status error";
        status.textContent = e.message;
      } finally {
        el("signupBtn").disabled = false;
      }
    });
"""
    return _layout(
        title="Create account", body=body, script=script, bootstrap={"auth_page": True}
    )


def render_process_page(
    *,
    current_store: Optional[Dict[str, Any]],
    recent_stores: list[Dict[str, Any]],
    user_label: str = "",
    notice: Optional[str] = None,
) -> str:
    body = (
        _NAV.format(title="Process Video")
        + _notice_html(notice)
        + """    <div class="grid">
      <section class="panel">
        <h2>Submit a video for processing</h2>
        <form id="processForm">
          <label for="youtubeUrl">YouTube URL</label>
          <input id="youtubeUrl" type="text" placeholder="https://www.youtube.com/watch?v=..." required />
          <label for="storeUrl">Store URL</label>
          <input id="storeUrl" type="text" placeholder="https://your-store.com" required />
          <label class="row" style="cursor: pointer;">
            <input id="autoApprove" type="checkbox" />
            <span>Auto-approve products with high confidence</span>
          </label>
          <div class="row" style="margin-top: 12px;">
            <button id="processBtn" type="submit">Process video</button>
            <button class="ghost" id="reviewBtn" type="button">Review existing products</button>
            <span class="status" id="status"></span>
          </div>
        </form>
      </section>
      <section class="panel">
        <h2>Store</h2>
        <div id="currentStore">No store selected.</div>
        <label for="connectUrl">Connect a store by URL</label>
        <input id="connectUrl" type="text" placeholder="https://your-store.com" />
        <div class="row" style="margin-top: 8px;">
          <button class="ghost" id="connectBtn" type="button">Connect</button>
          <button class="ghost" id="myStoreBtn" type="button">Use my store</button>
        </div>
        <div class="chips" id="recentStores"></div>
      </section>
    </div>
    <section class="panel">
      <div class="row">
        <h2 style="margin: 0;">Collections</h2>
        <input id="collectionSearch" type="text" placeholder="Search collections..." style="max-width: 260px;" />
        <select id="collectionTab">
          <option value="all">All collections</option>
          <option value="with-products">With products</option>
          <option value="empty">Empty</option>
        </select>
        <span class="status" id="collectionsStatus"></span>
      </div>
      <div class="cards" id="collections"></div>
      <div class="row" style="margin-top: 10px;">
        <button class="ghost" id="prevPage" type="button">Previous</button>
        <span id="pageInfo"></span>
        <button class="ghost" id="nextPage" type="button">Next</button>
      </div>
    </section>
"""
    )
    script = _NAV_SCRIPT + """
    let store = bootstrap.current_store;
    let page = 1;
    let pages = 1;

    function setStatus(id, text, isError = false) {
      el(id).className = isError ? "status error" : "status";
      el(id).textContent = text;
    }

    function reviewUrl(youtubeUrl, storeUrl) {
      return "/review?youtube_url=" + encodeURIComponent(youtubeUrl) +
        "&store_url=" + encodeURIComponent(storeUrl);
    }

    function renderStore(recent) {
      el("currentStore").innerHTML = store
        ? `Using store: <strong>${esc(store.store_title)}</strong><br /><code>${esc(store.store_url)}</code>`
        : "No store selected.";
      if (store && !el("storeUrl").value) el("storeUrl").value = store.store_url;
      const root = el("recentStores");
      root.innerHTML = "";
      for (const s of (recent || [])) {
        const b = document.createElement("button");
        b.type = "button";
        b.className = "ghost";
        b.textContent = s.store_title;
        b.addEventListener("click", () => selectStore(s.store_url));
        root.appendChild(b);
      }
    }

    async function selectStore(url) {
      try {
        const data = await api("POST", "/api/store/select", { store_url: url });
        store = data.current_store;
        el("storeUrl").value = store.store_url;
        renderStore(data.recent_stores);
        page = 1;
        loadCollections();
      } catch (e) {
        setStatus("collectionsStatus", e.message, true);
      }
    }

    async function loadCollections() {
      const root = el("collections");
      if (!store) {
        root.innerHTML = '<div class="empty">Select a store to see its collections.</div>';
        return;
      }
      setStatus("collectionsStatus", "Loading…");
      try {
        const q = new URLSearchParams({
          page: String(page),
          search: el("collectionSearch").value.trim(),
          tab: el("collectionTab").value,
        });
        const data = await api("GET", "/api/store/collections?" + q.toString());
        pages = data.pages || 1;
        el("pageInfo").textContent = `Page ${data.current_page} of ${pages}`;
        el("prevPage").disabled = page <= 1;
        el("nextPage").disabled = page >= pages;
        root.innerHTML = data.collections.length ? "" : '<div class="empty">No collections found.</div>';
        for (const c of data.collections) {
          const card = document.createElement("div");
          card.className = "card";
          const link = c.video_url ? `<a href="${reviewUrl(c.video_url, store.store_url)}">Review</a>` : "";
          card.innerHTML =
            `<div class="content"><h3>${esc(c.name)}</h3>` +
            `<p>${c.total_products} products · ${c.approved_products} approved · ` +
            `${c.draft_products} pending · ${c.rejected_products} rejected</p>` +
            `<p>${esc(c.last_updated || "")}</p>${link}</div>`;
          root.appendChild(card);
        }
        setStatus("collectionsStatus", "");
      } catch (e) {
        setStatus("collectionsStatus", e.message, true);
      }
    }

    el("connectBtn").addEventListener("click", () => {
      const url = el("connectUrl").value.trim();
      if (!url) { setStatus("collectionsStatus", "Store URL is required", true); return; }
      selectStore(url);
    });
    el("myStoreBtn").addEventListener("click", async () => {
      try {
        const data = await api("POST", "/api/store/mine");
        store = data.current_store;
        el("storeUrl").value = store.store_url;
        renderStore(data.recent_stores);
        loadCollections();
      } catch (e) {
        setStatus("collectionsStatus", e.message, true);
      }
    });
    el("collectionSearch").addEventListener("input", () => { page = 1; loadCollections(); });
    el("collectionTab").addEventListener("change", () => { page = 1; loadCollections(); });
    el("prevPage").addEventListener("click", () => { if (page > 1) { page -= 1; loadCollections(); } });
    el("nextPage").addEventListener("click", () => { if (page < pages) { page += 1; loadCollections(); } });

    el("reviewBtn").addEventListener("click", () => {
      const y = el("youtubeUrl").value.trim();
      const s = el("storeUrl").value.trim();
      if (!y || !s) { setStatus("status", "YouTube URL and store URL are required", true); return; }
      window.location.href = reviewUrl(y, s);
    });

    el("processForm").addEventListener("submit", async (ev) => {
      ev.preventDefault();
      el("processBtn").disabled = true;
      setStatus("status", "Processing…");
      try {
        const data = await api("POST", "/api/process-video", {
          youtube_url: el("youtubeUrl").value.trim(),
          store_url: el("storeUrl").value.trim(),
          auto_approve: el("autoApprove").checked,
        });
        window.location.href = data.review_url;
      } catch (e) {
        setStatus("status", e.message, true);
      } finally {
        el("processBtn").disabled = false;
      }
    });

    renderStore(bootstrap.recent_stores);
    loadCollections();
"""
    return _layout(
        title="Process Video",
        body=body,
        script=script,
        bootstrap={
            "current_store": current_store,
            "recent_stores": recent_stores,
            "user_label": user_label,
        },
    )


def render_review_page(
    *,
    youtube_url: str,
    store_url: str,
    video_embed_url: Optional[str],
    user_label: str = "",
) -> str:
    body = (
        _NAV.format(title="Product Review")
        + """    <div class="grid">
      <section class="panel" id="videoPanel">
        <h2>Video source</h2>
        <div id="videoFrame"></div>
      </section>
      <section class="panel">
        <h2>Review summary</h2>
        <div class="counts">
          <div class="count"><div class="k">Pending</div><div class="v" id="countPending">0</div></div>
          <div class="count approved"><div class="k">Approved</div><div class="v" id="countApproved">0</div></div>
          <div class="count rejected"><div class="k">Rejected</div><div class="v" id="countRejected">0</div></div>
        </div>
        <label>Total products</label>
        <div style="font-size: 22px; font-weight: 700;" id="countTotal">0</div>
        <label>Review progress</label>
        <div class="bar"><div id="progressBar" style="width: 0%"></div></div>
        <div style="font-size: 13px; margin-top: 4px;" id="progressText">0% complete</div>
        <div class="row" style="margin-top: 12px;">
          <button class="ok" id="approveAllNowBtn" type="button">Approve all now</button>
          <button class="ghost" id="refreshBtn" type="button">Refresh</button>
        </div>
      </section>
    </div>

    <div class="row" style="margin-top: 16px;">
      <button class="ghost" id="selectVisibleBtn" type="button">Select all visible</button>
      <button class="ok" id="approveSelectedBtn" type="button" disabled>Approve selected</button>
      <button class="bad" id="rejectSelectedBtn" type="button" disabled>Reject selected</button>
      <span class="status" id="status"></span>
    </div>

    <div class="tabs" id="tabs">
      <button type="button" data-tab="all">All (<span id="tabAll">0</span>)</button>
      <button type="button" data-tab="pending">Pending (<span id="tabPending">0</span>)</button>
      <button type="button" data-tab="approved">Approved (<span id="tabApproved">0</span>)</button>
      <button type="button" data-tab="rejected">Rejected (<span id="tabRejected">0</span>)</button>
    </div>

    <div id="pageError" class="panel" style="display: none;">
      <h2>Error loading products</h2>
      <p id="pageErrorText"></p>
      <button id="retryBtn" type="button">Retry</button>
      <a href="/process" style="margin-left: 10px;">Go back</a>
    </div>
    <div class="cards" id="cards"></div>

    <div class="pending-bar" id="pendingBar">
      <div>
        <strong id="pendingCount">0 changes pending</strong>
        <small id="pendingSummary"></small>
      </div>
      <button class="ghost" id="discardBtn" type="button">Discard</button>
      <button id="saveBtn" type="button">Save all</button>
    </div>

    <dialog id="editDialog">
      <h2>Edit product</h2>
      <form id="editForm" method="dialog">
        <label for="editName">Product name</label>
        <input id="editName" type="text" />
        <label for="editPrice">Price</label>
        <input id="editPrice" type="number" step="0.01" min="0" />
        <label for="editDescription">Description</label>
        <textarea id="editDescription"></textarea>
        <div class="row" style="margin-top: 12px;">
          <button class="ghost" id="editCancel" type="button">Cancel</button>
          <button id="editSave" type="submit">Stage changes</button>
        </div>
      </form>
    </dialog>

    <dialog id="clipDialog">
      <h2 id="clipTitle"></h2>
      <div id="clipFrame"></div>
      <div class="row" style="margin-top: 12px;"><button id="clipClose" type="button">Close</button></div>
    </dialog>
"""
    )
    script = _NAV_SCRIPT + """
    const session = { youtube_url: bootstrap.youtube_url, store_url: bootstrap.store_url };
    const query = new URLSearchParams(session).toString();
    let tab = "all";
    let products = [];
    let pendingChanges = 0;
    let editing = null;
    let busy = false;
    const selected = new Set();

    function setStatus(text, isError = false) {
      el("status").className = isError ? "status error" : "status";
      el("status").textContent = text;
    }

    function setBusy(value) {
      busy = value;
      el("saveBtn").disabled = value;
      el("discardBtn").disabled = value;
      el("approveAllNowBtn").disabled = value;
      el("editSave").disabled = value;
      for (const b of el("cards").querySelectorAll("button, input")) b.disabled = value;
      updateSelectionButtons();
    }

    function updateSelectionButtons() {
      const none = selected.size === 0 || busy;
      el("approveSelectedBtn").disabled = none;
      el("rejectSelectedBtn").disabled = none;
      const allVisible = products.length > 0 && products.every((p) => selected.has(p.id));
      el("selectVisibleBtn").textContent = allVisible ? "Deselect all visible" : "Select all visible";
      el("selectVisibleBtn").disabled = products.length === 0;
    }

    function renderSummary(data) {
      const c = data.counts;
      el("countPending").textContent = c.pending;
      el("countApproved").textContent = c.approved;
      el("countRejected").textContent = c.rejected;
      el("countTotal").textContent = data.total;
      el("tabAll").textContent = data.total;
      el("tabPending").textContent = c.pending;
      el("tabApproved").textContent = c.approved;
      el("tabRejected").textContent = c.rejected;
      el("progressBar").style.width = data.progress + "%";
      el("progressText").textContent = data.progress + "% complete";
      el("approveAllNowBtn").disabled = busy || c.pending === 0;
      pendingChanges = data.pending_changes;
      el("pendingBar").classList.toggle("visible", pendingChanges > 0);
      el("pendingCount").textContent = `${pendingChanges} changes pending`;
      el("pendingSummary").textContent = data.pending_summary;
      for (const b of el("tabs").querySelectorAll("button")) {
        b.classList.toggle("active", b.dataset.tab === tab);
      }
    }

    function card(p) {
      const div = document.createElement("div");
      div.className = "card" + (selected.has(p.id) ? " selected" : "");
      const thumb = p.thumbnail_url
        ? `<img src="${esc(p.thumbnail_url)}" alt="${esc(p.name)}" />` : "";
      const staged = p.staged ? ' <span class="badge staged">unsaved</span>' : "";
      const price = p.price !== null ? `<p>Price: $${Number(p.price).toFixed(2)}</p>` : "";
      div.innerHTML =
        `<div class="thumb">${thumb}` +
        `<span class="tl"><span class="badge ${p.review_bucket}">${p.review_bucket}</span>${staged}</span>` +
        `<span class="tr"><input type="checkbox" data-select="${esc(p.id)}" ${selected.has(p.id) ? "checked" : ""} /></span>` +
        `<span class="bl badge">${p.start_label}</span><span class="br badge">${p.end_label}</span></div>` +
        `<div class="content"><h3>${esc(p.name)}</h3>` +
        `<p>${Math.round(p.confidence_score * 100)}% confidence</p>${price}` +
        `<p>${esc(p.description || "No description available")}</p>` +
        `<div class="row">` +
        `<button class="ok" data-approve="${esc(p.id)}" type="button">Approve</button>` +
        `<button class="bad" data-reject="${esc(p.id)}" type="button">Reject</button>` +
        `<button class="ghost" data-edit="${esc(p.id)}" type="button">Edit</button>` +
        (p.clip_embed_url ? `<button class="ghost" data-play="${esc(p.id)}" type="button">Play clip</button>` : "") +
        `</div></div>`;
      return div;
    }

    function renderCards() {
      const root = el("cards");
      root.innerHTML = "";
      if (!products.length) {
        root.innerHTML = '<div class="empty">No products found in this category</div>';
      }
      for (const p of products) root.appendChild(card(p));
      if (busy) setBusy(true);
      updateSelectionButtons();
    }

    async function load() {
      el("pageError").style.display = "none";
      setStatus("Loading…");
      try {
        const data = await api("GET", `/api/review/products?${query}&tab=${tab}`);
        products = data.products;
        renderSummary(data);
        renderCards();
        setStatus("");
      } catch (e) {
        if (e.code === "missing_parameters") {
          window.location.href = "/process?notice=missing-parameters";
          return;
        }
        el("pageError").style.display = "block";
        el("pageErrorText").textContent = e.message;
        el("cards").innerHTML = "";
        setStatus("");
      }
    }

    async function mutate(url, body, okText) {
      setBusy(true);
      setStatus("Working…");
      try {
        await api("POST", url, { ...session, ...body });
        setStatus(okText);
        await load();
        return true;
      } catch (e) {
        setStatus(e.message, true);
        return false;
      } finally {
        setBusy(false);
      }
    }

    async function mark(ids, decision) {
      if (!ids.length) { setStatus("No products selected", true); return; }
      const ok = await mutate("/api/review/mark", { product_ids: ids, decision },
        `${ids.length} product(s) marked, save to publish.`);
      if (ok) selected.clear();
    }

    el("cards").addEventListener("click", (ev) => {
      const t = ev.target;
      if (busy && !t.dataset.play) return;
      if (t.dataset.select) {
        if (selected.has(t.dataset.select)) selected.delete(t.dataset.select);
        else selected.add(t.dataset.select);
        renderCards();
      } else if (t.dataset.approve) {
        mark([t.dataset.approve], "approve");
      } else if (t.dataset.reject) {
        mark([t.dataset.reject], "reject");
      } else if (t.dataset.edit) {
        editing = products.find((p) => p.id === t.dataset.edit);
        el("editName").value = editing.name || "";
        el("editPrice").value = editing.price ?? "";
        el("editDescription").value = editing.description || "";
        el("editDialog").showModal();
      } else if (t.dataset.play) {
        const p = products.find((x) => x.id === t.dataset.play);
        el("clipTitle").textContent = p.name;
        el("clipFrame").innerHTML = `<iframe src="${esc(p.clip_embed_url)}" allow="autoplay; encrypted-media" allowfullscreen></iframe>`;
        el("clipDialog").showModal();
      }
    });

    el("selectVisibleBtn").addEventListener("click", () => {
      const allVisible = products.every((p) => selected.has(p.id));
      for (const p of products) {
        if (allVisible) selected.delete(p.id); else selected.add(p.id);
      }
      renderCards();
    });
    el("approveSelectedBtn").addEventListener("click", () => mark([...selected], "approve"));
    el("rejectSelectedBtn").addEventListener("click", () => mark([...selected], "reject"));

    el("approveAllNowBtn").addEventListener("click", async () => {
      if (!confirm("Approve all products in this video? Approved products are published to your store.")) return;
      await mutate("/api/review/bulk", { product_ids: [], decision: "approve", review_all: true },
        "All products approved.");
    });
    el("refreshBtn").addEventListener("click", () => mutate("/api/review/refresh", {}, "Refreshed."));

    el("editCancel").addEventListener("click", () => el("editDialog").close());
    el("editForm").addEventListener("submit", async (ev) => {
      ev.preventDefault();
      const body = { product_id: editing.id };
      const name = el("editName").value.trim();
      const price = el("editPrice").value;
      const description = el("editDescription").value;
      if (name && name !== editing.name) body.name = name;
      if (price !== "" && Number(price) !== Number(editing.price)) body.price = Number(price);
      if (description && description !== (editing.description || "")) body.description = description;
      el("editDialog").close();
      if (Object.keys(body).length === 1) { setStatus("Nothing changed."); return; }
      await mutate("/api/review/edit", body, "Edit staged, save to publish.");
    });

    el("clipClose").addEventListener("click", () => {
      el("clipFrame").innerHTML = "";
      el("clipDialog").close();
    });

    el("saveBtn").addEventListener("click", () =>
      mutate("/api/review/submit", {}, "All changes saved."));
    el("discardBtn").addEventListener("click", async () => {
      if (!confirm(`Discard ${pendingChanges} pending change(s)?`)) return;
      await mutate("/api/review/discard", { confirm: true }, "Changes discarded.");
    });

    for (const b of el("tabs").querySelectorAll("button")) {
      b.addEventListener("click", () => { tab = b.dataset.tab; load(); });
    }
    el("retryBtn").addEventListener("click", load);

    window.addEventListener("beforeunload", (ev) => {
      if (pendingChanges > 0) {
        ev.preventDefault();
        ev.returnValue = "";
      }
    });
    document.addEventListener("click", (ev) => {
      const a = ev.target.closest && ev.target.closest("a");
      if (a && pendingChanges > 0 && !confirm("You have unsaved changes. Leave this page?")) {
        ev.preventDefault();
      }
    }, true);

    if (bootstrap.video_embed_url) {
      el("videoFrame").innerHTML = `<iframe src="${esc(bootstrap.video_embed_url)}" allowfullscreen></iframe>`;
    } else {
      el("videoPanel").style.display = "none";
    }
    load();
"""
    return _layout(
        title="Product Review",
        body=body,
        script=script,
        bootstrap={
            "youtube_url": youtube_url,
            "store_url": store_url,
            "video_embed_url": video_embed_url,
            "user_label": user_label,
        },
    )
