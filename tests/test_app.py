"""Tests for app creation, plugins and the render queue."""

import asyncio
import json
import textwrap

import pytest

from staticforge.app import create_app, html_output_for, normalize_page_path
from staticforge.config import BuildConfig
from staticforge.errors import ConfigError, StaticforgeError
from staticforge.models import RunOptions
from staticforge.queries import DataFileQueryExecutor, data_file_for


def write_plugin(directory, name, body):
    (directory / f"{name}.py").write_text(textwrap.dedent(body))


@pytest.mark.parametrize(
    "raw, expected",
    [("/", "/"), ("", "/"), ("about", "/about/"), ("/blog/a", "/blog/a/"), ("//x//y/", "/x/y/")],
)
def test_normalize_page_path(raw, expected):
    assert normalize_page_path(raw) == expected


def test_html_output_for(tmp_path):
    assert html_output_for(tmp_path, "/") == tmp_path / "index.html"
    assert html_output_for(tmp_path, "/blog/a/") == tmp_path / "blog" / "a" / "index.html"


def test_data_file_for(tmp_path):
    assert data_file_for(tmp_path, "/") == tmp_path / "index.json"
    assert data_file_for(tmp_path, "/blog/") == tmp_path / "blog" / "index.json"


# =============================================================================
# Render queue
# =============================================================================


class TestRenderQueue:
    def test_queue_from_config_pages(self, make_app):
        app = make_app(
            {
                "pages": [
                    {"path": "/", "html": "<h1>Home</h1>"},
                    {"path": "about", "context": {"title": "About"}, "layout": "plain"},
                ]
            }
        )

        queue = app.create_render_queue()

        assert [job.path for job in queue] == ["/", "/about/"]
        assert queue[0].context == {"html": "<h1>Home</h1>"}
        assert queue[1].context == {"title": "About"}
        assert queue[1].route == {"layout": "plain"}
        assert queue[1].html_output == app.config.output_dir / "about" / "index.html"

    def test_duplicates_warn(self, make_app):
        app = make_app({"pages": [{"path": "/a/", "html": "first"}, {"path": "/a", "html": "second"}]})

        queue = app.create_render_queue()

        assert len(queue) == 1
        assert queue[0].context["html"] == "first"
        assert app.warnings == ["Duplicate page path /a/ ignored"]

    def test_custom_builder(self, make_app):
        app = make_app(render_queue_builder=lambda app: [])
        assert app.create_render_queue() == []


class TestConfigAssets:
    def test_files_and_images(self, make_app, site_dir):
        app = make_app(
            {
                "assets": {
                    "files": [{"source": "docs/a.pdf", "dest": "files/a.pdf"}],
                    "images": [{"source": "img/b.png", "dest": "b.png", "width": 300}],
                }
            }
        )

        [file_job] = app.assets.files
        [image_job] = app.assets.images
        assert file_job.source_path == site_dir / "docs" / "a.pdf"
        assert file_job.dest_path == app.config.output_dir / "files" / "a.pdf"
        assert image_job.dest_path == app.config.images_dir / "b.png"
        assert image_job.transform == {"width": 300}


# =============================================================================
# Plugins
# =============================================================================


class TestPlugins:
    def test_plugin_registers_pages_and_hooks(self, site_dir, tmp_path, monkeypatch, worker_factory):
        write_plugin(
            tmp_path,
            "sf_test_blog_plugin",
            """
            def register(api, options):
                api.add_page("/blog/", html="<ul></ul>", title=options["title"])
                api.add_image("img/cover.png", "cover.png", width=640)
                api.add_file("robots.txt", "robots.txt")
                api.add_data_source("posts", lambda context: [1, 2])

                def create_pages(pages_api):
                    pages_api.add_page("/blog/first/", html="<p>first</p>")

                api.on("createPages", create_pages)
            """,
        )
        monkeypatch.syspath_prepend(str(tmp_path))
        config = BuildConfig(
            site_dir,
            {"plugins": [{"use": "sf_test_blog_plugin", "options": {"title": "Blog"}}]},
        )

        app = asyncio.run(create_app(site_dir, RunOptions(), config=config, worker_factory=worker_factory))

        assert [page["path"] for page in app.pages] == ["/blog/", "/blog/first/"]
        assert app.pages[0]["title"] == "Blog"
        assert app.assets.images[0].dest_path == app.config.images_dir / "cover.png"
        assert app.assets.images[0].transform == {"width": 640}
        assert app.assets.files[0].dest_path == app.config.output_dir / "robots.txt"
        assert "posts" in app.data_sources

    def test_plugin_by_name(self, site_dir, tmp_path, monkeypatch):
        write_plugin(
            tmp_path,
            "sf_test_warn_plugin",
            """
            def register(api, options):
                api.warn("careful")
            """,
        )
        monkeypatch.syspath_prepend(str(tmp_path))
        config = BuildConfig(site_dir, {"plugins": ["sf_test_warn_plugin"]})

        app = asyncio.run(create_app(site_dir, config=config))

        assert app.warnings == ["[sf_test_warn_plugin] careful"]

    def test_missing_plugin(self, site_dir):
        config = BuildConfig(site_dir, {"plugins": ["sf_test_does_not_exist"]})
        with pytest.raises(ConfigError, match="could not be imported"):
            asyncio.run(create_app(site_dir, config=config))

    def test_plugin_without_register(self, site_dir, tmp_path, monkeypatch):
        write_plugin(tmp_path, "sf_test_empty_plugin", "VALUE = 1\n")
        monkeypatch.syspath_prepend(str(tmp_path))
        config = BuildConfig(site_dir, {"plugins": ["sf_test_empty_plugin"]})

        with pytest.raises(ConfigError, match="does not define register"):
            asyncio.run(create_app(site_dir, config=config))

    def test_invalid_entry(self, site_dir):
        config = BuildConfig(site_dir, {"plugins": [{"options": {}}]})
        with pytest.raises(ConfigError, match="Invalid plugin entry"):
            asyncio.run(create_app(site_dir, config=config))


class TestDefaults:
    def test_in_process_workers(self, site_dir):
        config = BuildConfig(site_dir)
        app = asyncio.run(create_app(site_dir, RunOptions(use_workers=False), config=config))

        worker = app.create_worker("html-writer")
        assert worker.__class__.__name__ == "InProcessWorker"
        worker.end()

    def test_command_compiler_from_config(self, site_dir):
        config = BuildConfig(site_dir, {"compiler": {"command": "npm run build"}})
        app = asyncio.run(create_app(site_dir, config=config))

        assert app.compiler.command == ["npm", "run", "build"]
        assert app.compiler.cwd == site_dir.resolve()


# =============================================================================
# Queries
# =============================================================================


class TestQueries:
    def test_async_data_source(self, make_app):
        app = make_app({"pages": [{"path": "/p/", "query": "page"}]})

        async def source(context):
            return {"ok": True}

        app.data_sources["page"] = source
        queue = app.create_render_queue()

        asyncio.run(app.query_executor.execute(queue, app, "h"))

        assert queue[0].data == {"ok": True}
        assert json.loads(queue[0].data_output.read_text()) == {"hash": "h", "data": {"ok": True}}

    def test_static_data_gets_file(self, make_app):
        app = make_app({"pages": [{"path": "/", "data": {"n": 1}}, {"path": "/plain/"}]})
        queue = app.create_render_queue()

        asyncio.run(DataFileQueryExecutor().execute(queue, app, "h"))

        assert queue[0].data_output == app.config.data_dir / "index.json"
        assert queue[1].data_output is None

    def test_unknown_query(self, make_app):
        app = make_app({"pages": [{"path": "/p/", "query": "missing"}]})
        queue = app.create_render_queue()

        with pytest.raises(StaticforgeError, match="unknown query 'missing'"):
            asyncio.run(app.query_executor.execute(queue, app, "h"))
