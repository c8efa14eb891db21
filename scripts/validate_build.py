#!/usr/bin/env python3
"""Pre-push build validation — run before every git push to catch issues early.

Usage: python scripts/validate_build.py

Checks:
  1. All Python files compile (no syntax errors)
  2. Flask app creates successfully
  3. Key routes respond (health + a sample PDF)
"""
import os
import sys
import py_compile
import glob

# Ensure repo root is in path
REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, REPO_ROOT)
os.chdir(REPO_ROOT)

os.environ.setdefault("SECRET_KEY", "test")


def check_syntax():
    """Check all .py files for syntax errors."""
    errors = []
    files = glob.glob("quotedoc/**/*.py", recursive=True) + glob.glob("scripts/*.py")
    files += [f for f in ("app.py", "logging_config.py") if os.path.exists(f)]
    for f in files:
        try:
            py_compile.compile(f, doraise=True)
        except py_compile.PyCompileError as e:
            errors.append(f"{f}: {e}")
    return errors, len(files)


def check_app_creates():
    """Check Flask app creates without crash."""
    try:
        from app import create_app
        app = create_app()
        routes = len(list(app.url_map.iter_rules()))
        return None, routes, app
    except Exception as e:
        return str(e), 0, None


def check_routes(app):
    """Health answers, and a minimal quote comes back as a PDF."""
    errors = []
    sample = {
        "contact": {"company": "Build Check"},
        "items": [{"name": "Item", "qty": 3, "price": 1000}],
        "correlative": "0001",
    }
    with app.test_client() as c:
        r = c.get("/api/health")
        if r.status_code != 200:
            errors.append(f"/api/health → {r.status_code}")
        for path in ("/api/generate-quote-pdf-file", "/api/generate-quote-pdf"):
            r = c.post(path, json=sample)
            if r.status_code != 200 or not r.data.startswith(b"%PDF"):
                errors.append(f"{path} → {r.status_code}")
    return errors


if __name__ == "__main__":
    print("=" * 60)
    print("BUILD VALIDATION")
    print("=" * 60)

    all_ok = True

    # 1. Syntax
    print("\n1. Syntax check...")
    errs, count = check_syntax()
    if errs:
        print(f"   FAIL: {len(errs)} syntax errors")
        for e in errs:
            print(f"   - {e}")
        all_ok = False
    else:
        print(f"   OK: {count} files compiled")

    # 2. App creation
    print("\n2. App creation...")
    err, routes, app = check_app_creates()
    if err:
        print(f"   FAIL: {err}")
        all_ok = False
    else:
        print(f"   OK: {routes} routes")

    if app:
        # 3. Routes
        print("\n3. Route checks...")
        errs = check_routes(app)
        if errs:
            print(f"   FAIL: {len(errs)} routes broken")
            for e in errs:
                print(f"   - {e}")
            all_ok = False
        else:
            print("   OK: health + PDF routes respond 200")

    print("\n" + "=" * 60)
    if all_ok:
        print("BUILD VALIDATION: ALL PASSED")
        print("=" * 60)
        sys.exit(0)
    else:
        print("BUILD VALIDATION: FAILED — do not push")
        print("=" * 60)
        sys.exit(1)
