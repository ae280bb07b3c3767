import hashlib
import json

import pytest

from precachegen import InjectManifest
from precachegen.errors import (
    AmbiguousInjectionPoint,
    ConfigurationError,
    InjectionPointNotFound,
    SourceReadError,
    E_SOURCE_READ,
)
from precachegen.host.toolchain import Compiler, CompilerOptions, MemoryFileSystem
from precachegen.registry import AssetRegistry
from precachegen.sourcemap import decode_mappings

MAIN = "console.log('main');\n"
SW = "precache(self.__WB_MANIFEST);\n"


def _md5(text):
    return hashlib.md5(text.encode("utf-8")).hexdigest()


def _files(**extra):
    files = {"/project/src/sw.js": SW, "/project/src/main.js": MAIN}
    files.update({f"/project/{k}": v for k, v in extra.items()})
    return files


def _compiler(plugins, *, files=None, api="staged", **options):
    return Compiler(
        CompilerOptions(
            context="/project",
            output_path="/project/dist",
            entry={"main": "src/main.js"},
            **options,
        ),
        input_fs=MemoryFileSystem(files or _files()),
        api=api,
        plugins=plugins,
    )


def _text(compilation, name):
    return compilation.get_asset(name).source.text()


@pytest.mark.parametrize("api", ["staged", "legacy"])
def test_compiled_worker_receives_manifest(api):
    plugin = InjectManifest(sw_src="src/sw.js", registry=AssetRegistry())
    compilation = _compiler([plugin], api=api).run()
    assert compilation.errors == []
    expected = "[{'revision':'%s','url':'main.js'}]" % _md5(MAIN)
    assert _text(compilation, "sw.js") == f"precache({expected});\n"
    assert "/project/src/sw.js" in compilation.file_dependencies
    assert plugin.manifest_result.size == len(MAIN.encode("utf-8"))


def test_copy_mode_keeps_double_quotes():
    plugin = InjectManifest(
        sw_src="src/sw.js", compile_src=False, registry=AssetRegistry()
    )
    compilation = _compiler([plugin]).run()
    assert compilation.errors == []
    assert _text(compilation, "sw.js") == (
        'precache([{"revision":"%s","url":"main.js"}]);\n' % _md5(MAIN)
    )


def test_eval_devtool_with_minimize_keeps_double_quotes():
    plugin = InjectManifest(sw_src="src/sw.js", registry=AssetRegistry())
    compilation = _compiler(
        [plugin], devtool="eval-cheap-source-map", minimize=True
    ).run()
    assert '"url":"main.js"' in _text(compilation, "sw.js")


class BannerPlugin:
    def __init__(self):
        self.applied_to = []

    def apply(self, compiler):
        self.applied_to.append(compiler)
        compiler.hooks.compilation.tap(
            "Banner",
            lambda c: c.hooks.build_module.tap(
                "Banner", lambda m: setattr(m, "source", "/* banner */\n" + m.source)
            ),
        )


def test_compilation_plugins_only_apply_to_sub_build():
    banner = BannerPlugin()
    plugin = InjectManifest(
        sw_src="src/sw.js", compilation_plugins=[banner], registry=AssetRegistry()
    )
    compiler = _compiler([plugin])
    compilation = compiler.run()
    assert compilation.errors == []
    assert _text(compilation, "sw.js").startswith("/* banner */\n")
    assert _text(compilation, "main.js") == MAIN
    assert banner.applied_to and compiler not in banner.applied_to


def test_compilation_plugins_ignored_in_copy_mode():
    banner = BannerPlugin()
    plugin = InjectManifest(
        sw_src="src/sw.js",
        compile_src=False,
        compilation_plugins=[banner],
        registry=AssetRegistry(),
    )
    compilation = _compiler([plugin]).run()
    assert banner.applied_to == []
    assert [str(w) for w in compilation.warnings] == [
        "compileSrc is false, so the compilation_plugins option will be ignored."
    ]


def test_source_map_is_updated_in_step():
    sw = "const m = self.__WB_MANIFEST; go(m);\n"
    plugin = InjectManifest(sw_src="src/sw.js", registry=AssetRegistry())
    compiler = _compiler(
        [plugin], files=_files(**{"src/sw.js": sw}), devtool="source-map"
    )
    compilation = compiler.run()
    assert compilation.errors == []

    entries = plugin.manifest_result.entries
    assert [e.url for e in entries] == ["main.js"]
    text = _text(compilation, "sw.js")
    manifest = "[{'revision':'%s','url':'main.js'}]" % entries[0].revision
    assert text.startswith(f"const m = {manifest}; go(m);\n")
    assert text.endswith("//# sourceMappingURL=sw.js.map")

    data = json.loads(_text(compilation, "sw.js.map"))
    assert data["file"] == "sw.js"
    assert data["sources"] == ["src/sw.js"]
    first_line = decode_mappings(data["mappings"])[0]
    by_original = {seg[3]: seg[0] for seg in first_line}
    assert by_original[30] == 12 + len(manifest)
    assert text[by_original[30]:].startswith("go(m);")
    # Neither the worker nor its map are precached.
    assert "sw.js" not in manifest
    assert plugin.registry.is_generated("sw.js.map")


def test_dest_relative_to_output_path():
    registry = AssetRegistry()
    plugin = InjectManifest(
        sw_src="src/sw.js", sw_dest="/project/dist/workers/sw.js", registry=registry
    )
    compilation = _compiler([plugin]).run()
    assert compilation.errors == []
    assert compilation.get_asset("workers/sw.js") is not None
    assert registry.is_generated("workers/sw.js")


def test_host_mode_is_inherited():
    plugin = InjectManifest(sw_src="src/sw.js", registry=AssetRegistry())
    _compiler([plugin], mode="production").run()
    assert plugin.config.mode == "production"


def test_several_workers_exclude_each_other():
    files = _files(**{"src/a.js": SW, "src/b.js": SW})
    registry = AssetRegistry()
    first = InjectManifest(sw_src="src/a.js", sw_dest="sw-a.js", registry=registry)
    second = InjectManifest(sw_src="src/b.js", sw_dest="sw-b.js", registry=registry)
    compilation = _compiler([first, second], files=files).run()
    assert compilation.errors == []
    for plugin in (first, second):
        assert [e.url for e in plugin.manifest_result.entries] == ["main.js"]


def test_missing_injection_point_is_a_build_error():
    files = _files(**{"src/sw.js": "precache([]);\n"})
    plugin = InjectManifest(sw_src="src/sw.js", registry=AssetRegistry())
    compilation = _compiler([plugin], files=files).run()
    assert len(compilation.errors) == 1
    assert isinstance(compilation.errors[0], InjectionPointNotFound)
    assert _text(compilation, "sw.js") == "precache([]);\n"


def test_repeated_injection_point_is_a_build_error():
    files = _files(**{"src/sw.js": SW + SW})
    plugin = InjectManifest(sw_src="src/sw.js", registry=AssetRegistry())
    compilation = _compiler([plugin], files=files).run()
    assert [type(e) for e in compilation.errors] == [AmbiguousInjectionPoint]


def test_sub_build_errors_reach_the_parent():
    plugin = InjectManifest(sw_src="src/missing.js", registry=AssetRegistry())
    compilation = _compiler([plugin]).run()
    assert len(compilation.errors) == 1
    assert "Module not found" in str(compilation.errors[0])
    assert compilation.get_asset("missing.js") is None


def test_unreadable_source_in_copy_mode_is_reported_once():
    plugin = InjectManifest(
        sw_src="src/nope.js", compile_src=False, registry=AssetRegistry()
    )
    compilation = _compiler([plugin]).run()
    assert [type(e) for e in compilation.errors] == [SourceReadError]
    assert compilation.errors[0].code == E_SOURCE_READ
    assert compilation.errors[0].context == {"path": "/project/src/nope.js"}
    assert str(compilation.errors[0]).startswith("Unable to read src/nope.js")


def test_invalid_options_fail_before_the_build():
    plugin = InjectManifest(sw_src="src/sw.js", injection_point="", registry=AssetRegistry())
    with pytest.raises(ConfigurationError) as info:
        _compiler([plugin])
    assert "injection_point" in str(info.value)
    assert str(info.value).startswith(
        "Please check your InjectManifest plugin configuration:"
    )


def _repeat_warnings(compilation):
    return [w for w in compilation.warnings if "called multiple times" in str(w)]


def test_repeated_runs_warn_once_per_build():
    plugin = InjectManifest(sw_src="src/sw.js", registry=AssetRegistry())
    compiler = _compiler([plugin])
    first = compiler.run()
    second = compiler.run()
    third = compiler.run()
    assert _repeat_warnings(first) == []
    assert len(_repeat_warnings(second)) == 1
    assert len(_repeat_warnings(third)) == 1
    assert second.errors == [] and third.errors == []


def test_repeat_warning_is_not_duplicated_within_a_build():
    from precachegen.host.toolchain import RawSource

    plugin = InjectManifest(sw_src="src/sw.js", registry=AssetRegistry())
    compilation = _compiler([plugin]).run()
    for _ in range(2):
        compilation.update_asset("sw.js", RawSource(SW))
        plugin.add_assets(compilation)
    assert len(_repeat_warnings(compilation)) == 1


def test_options_object_and_keywords_are_exclusive():
    from precachegen.config import InjectManifestOptions

    with pytest.raises(TypeError):
        InjectManifest(InjectManifestOptions(sw_src="a.js"), sw_dest="b.js")
