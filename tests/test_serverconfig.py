"""
Tests for reading declared features and writing the generated features file.
"""

import xml.etree.ElementTree as ET

import pytest

from featuregen.serverconfig import (
    FEATURES_FILE_MESSAGE,
    GENERATED_FEATURES_FILE,
    GeneratedFeaturesFile,
    ServerFeatureInventory,
    build_features_document,
    feature_manager_features,
    parse_config,
)

SERVER_XML = """\
<?xml version="1.0" encoding="UTF-8"?>
<server description="test server">
    <featureManager>
        <feature>jaxrs-2.1</feature>
        <feature>mpConfig-1.4</feature>
    </featureManager>
    <include location="${server.config.dir}/extra.xml"/>
    <include location="optional.xml" optional="true"/>
    <httpEndpoint id="defaultHttpEndpoint" httpPort="9080"/>
</server>
"""

EXTRA_XML = """\
<server>
    <featureManager>
        <feature>jsonb-1.0</feature>
    </featureManager>
    <include location="server.xml"/>
</server>
"""


@pytest.fixture
def server_dir(tmp_path):
    directory = tmp_path / "servers" / "defaultServer"
    directory.mkdir(parents=True)
    (directory / "server.xml").write_text(SERVER_XML, encoding="utf-8")
    (directory / "extra.xml").write_text(EXTRA_XML, encoding="utf-8")
    return directory


@pytest.fixture
def config_dir(tmp_path):
    directory = tmp_path / "src" / "main" / "liberty" / "config"
    directory.mkdir(parents=True)
    (directory / "server.xml").write_text(SERVER_XML, encoding="utf-8")
    return directory


def _markers(server_xml):
    root = parse_config(server_xml).getroot()
    return [
        node
        for manager in root.iter("featureManager")
        for node in manager
        if node.tag is ET.Comment and node.text.strip() == FEATURES_FILE_MESSAGE
    ]


class TestServerFeatureInventory:
    """Test reading declared features."""

    def test_reads_server_xml_and_includes(self, server_dir):
        features = ServerFeatureInventory(server_dir).declared_features()
        assert features == {"jaxrs-2.1", "mpConfig-1.4", "jsonb-1.0"}

    def test_reads_config_dropins(self, server_dir):
        overrides = server_dir / "configDropins" / "overrides"
        overrides.mkdir(parents=True)
        (overrides / "a.xml").write_text(
            "<server><featureManager><feature>cdi-2.0</feature></featureManager></server>",
            encoding="utf-8",
        )
        assert "cdi-2.0" in ServerFeatureInventory(server_dir).declared_features()

    def test_excluded_files_skipped(self, server_dir):
        generated = server_dir / GENERATED_FEATURES_FILE
        generated.parent.mkdir(parents=True)
        generated.write_text(
            "<server><featureManager><feature>cdi-2.0</feature></featureManager></server>",
            encoding="utf-8",
        )
        inventory = ServerFeatureInventory(server_dir, exclude=[generated])
        assert "cdi-2.0" not in inventory.declared_features()

    def test_missing_server_xml_is_empty(self, tmp_path):
        assert ServerFeatureInventory(tmp_path).declared_features() == set()

    def test_malformed_server_xml_raises(self, tmp_path):
        (tmp_path / "server.xml").write_text("<server><featureManager>", encoding="utf-8")
        with pytest.raises(ET.ParseError):
            ServerFeatureInventory(tmp_path).declared_features()

    def test_variables(self, tmp_path):
        shared = tmp_path / "shared"
        shared.mkdir()
        (shared / "common.xml").write_text(
            "<server><featureManager><feature>ssl-1.0</feature></featureManager></server>",
            encoding="utf-8",
        )
        server = tmp_path / "server"
        server.mkdir()
        (server / "server.xml").write_text(
            '<server><include location="${shared.config.dir}/common.xml"/></server>',
            encoding="utf-8",
        )
        inventory = ServerFeatureInventory(server, variables={"shared.config.dir": str(shared)})
        assert inventory.declared_features() == {"ssl-1.0"}


class TestBuildFeaturesDocument:
    def test_sorted_features(self):
        root = build_features_document({"servlet-4.0", "cdi-2.0"}).getroot()
        assert root.tag == "server"
        assert feature_manager_features(root) == ["cdi-2.0", "servlet-4.0"]


class TestGeneratedFeaturesFile:
    """Test writing, discarding and restoring the generated file."""

    def test_write(self, config_dir, server_dir):
        generated = GeneratedFeaturesFile(config_dir, server_dir)
        location = generated.write({"servlet-4.0", "mpHealth-2.2"})

        assert location == str(server_dir / GENERATED_FEATURES_FILE)
        for path in (generated.source, generated.target):
            root = parse_config(path).getroot()
            assert feature_manager_features(root) == ["mpHealth-2.2", "servlet-4.0"]
        assert len(_markers(config_dir / "server.xml")) == 1

    def test_write_twice_keeps_single_marker(self, config_dir, server_dir):
        generated = GeneratedFeaturesFile(config_dir, server_dir)
        generated.write({"servlet-4.0"})
        generated.write({"servlet-4.0"})
        assert len(_markers(config_dir / "server.xml")) == 1

    def test_server_xml_features_untouched(self, config_dir, server_dir):
        GeneratedFeaturesFile(config_dir, server_dir).write({"servlet-4.0"})
        root = parse_config(config_dir / "server.xml").getroot()
        assert feature_manager_features(root) == ["jaxrs-2.1", "mpConfig-1.4"]

    def test_discard(self, config_dir, server_dir):
        generated = GeneratedFeaturesFile(config_dir, server_dir)
        generated.write({"servlet-4.0"})
        generated.discard()
        assert not generated.target.exists()
        assert generated.source.exists()
        assert _markers(config_dir / "server.xml") == []

    def test_discard_without_file(self, config_dir, server_dir):
        GeneratedFeaturesFile(config_dir, server_dir).discard()
        assert _markers(config_dir / "server.xml") == []

    def test_restore(self, config_dir, server_dir):
        generated = GeneratedFeaturesFile(config_dir, server_dir)
        generated.write({"servlet-4.0"})
        generated.discard()
        generated.restore()
        assert generated.target.exists()
        assert len(_markers(config_dir / "server.xml")) == 1

    def test_write_failure_rolls_back(self, config_dir, tmp_path):
        blocker = tmp_path / "blocked"
        blocker.write_text("not a directory", encoding="utf-8")
        generated = GeneratedFeaturesFile(config_dir, blocker)
        with pytest.raises(OSError):
            generated.write({"servlet-4.0"})
        assert not generated.source.exists()
        assert _markers(config_dir / "server.xml") == []

    def test_no_server_xml(self, tmp_path, server_dir):
        config = tmp_path / "empty-config"
        generated = GeneratedFeaturesFile(config, server_dir)
        generated.write({"servlet-4.0"})
        assert generated.target.exists()
        assert not (config / "server.xml").exists()

    def test_marker_keeps_server_xml_prolog(self, config_dir, server_dir):
        server_xml = config_dir / "server.xml"
        server_xml.write_text(
            "<?xml version='1.0'?>\n"
            "<!-- Copyright ACME -->\n"
            "<server>\n"
            "    <featureManager>\n"
            "        <feature>jsp-2.3</feature>\n"
            "    </featureManager>\n"
            "</server>\n"
            "<!-- end of configuration -->\n",
            encoding="utf-8",
        )
        generated = GeneratedFeaturesFile(config_dir, server_dir)
        generated.write({"servlet-4.0"})

        text = server_xml.read_text(encoding="utf-8")
        assert text.startswith("<?xml version='1.0'?>\n<!-- Copyright ACME -->\n<server>")
        assert text.endswith("</server>\n<!-- end of configuration -->\n")
        assert len(_markers(server_xml)) == 1

        generated.discard()
        text = server_xml.read_text(encoding="utf-8")
        assert "Copyright ACME" in text
        assert _markers(server_xml) == []
        assert feature_manager_features(parse_config(server_xml).getroot()) == ["jsp-2.3"]
