"""Unit tests for loading the cloud test configuration."""
import os
import shutil
import tempfile
import threading
import unittest
from unittest.mock import patch

from cloud_suite.configuration import (
    OnceFlag,
    SuiteConfiguration,
    load_configuration,
    load_environment,
    overlay_configuration,
    read_configuration_file,
)
from cloud_suite.errors import ConfigurationError
from cloud_suite.keys import (
    COMMITTER_PROPERTY,
    CONFIGURATION_FILE_PROPERTY,
    OUTPUTCOMMITTER_FACTORY_CLASS,
    OUTPUTCOMMITTER_FACTORY_DEFAULT,
    UNSET_PROPERTY,
)
from tests.test_utils import write_configuration

STAGING_FACTORY = 'org.apache.hadoop.fs.s3a.commit.staging.DirectoryStagingCommitterFactory'
MAGIC_FACTORY = 'org.apache.hadoop.fs.s3a.commit.magic.MagicS3GuardCommitterFactory'


class TestLoadConfiguration(unittest.TestCase):
    """Test cases for resolving the configuration from properties"""

    def setUp(self):
        """Set up test environment"""
        self.temp_dir = tempfile.mkdtemp()
        self.path = write_configuration(self.temp_dir, {
            'fs.s3a.access.key': 'test-key',
            'fs.s3a.secret.key': 'test-secret',
        })
        self.patcher = patch('cloud_suite.configuration._config_logged', OnceFlag())
        self.patcher.start()

    def tearDown(self):
        """Clean up test environment"""
        self.patcher.stop()
        shutil.rmtree(self.temp_dir)

    def test_unset_property_disables(self):
        """Test that empty, blank and sentinel values yield no configuration"""
        for value in ['', '   ', UNSET_PROPERTY, f' {UNSET_PROPERTY} ']:
            with self.subTest(value=value):
                self.assertIsNone(load_configuration({CONFIGURATION_FILE_PROPERTY: value}))

    def test_missing_property_disables(self):
        """Test that no property at all yields no configuration"""
        self.assertIsNone(load_configuration({}))

    def test_missing_file_fails(self):
        """Test that naming a file which does not exist is an error"""
        missing = os.path.join(self.temp_dir, 'no-such-file.xml')
        with self.assertRaises(FileNotFoundError) as context:
            load_configuration({CONFIGURATION_FILE_PROPERTY: missing})
        self.assertIn(missing, str(context.exception))
        self.assertIn(CONFIGURATION_FILE_PROPERTY, str(context.exception))

    def test_loads_options(self):
        """Test loading an existing file"""
        config = load_configuration({CONFIGURATION_FILE_PROPERTY: self.path})
        self.assertIsNotNone(config)
        self.assertEqual(config.get('fs.s3a.access.key'), 'test-key')
        self.assertEqual(config.get('fs.s3a.secret.key'), 'test-secret')
        self.assertEqual(config.source, self.path)

    def test_reads_process_environment(self):
        """Test that the process environment is used by default"""
        with patch.dict('os.environ', {CONFIGURATION_FILE_PROPERTY: self.path}):
            config = load_configuration()
        self.assertEqual(config.get('fs.s3a.access.key'), 'test-key')

    def test_committer_default(self):
        """Test the default committer when neither file nor property sets one"""
        config = load_configuration({CONFIGURATION_FILE_PROPERTY: self.path})
        self.assertEqual(config.get(OUTPUTCOMMITTER_FACTORY_CLASS), OUTPUTCOMMITTER_FACTORY_DEFAULT)
        self.assertEqual(config.committer, OUTPUTCOMMITTER_FACTORY_DEFAULT)

    def test_committer_from_file(self):
        """Test that the committer in the file is used when there is no override"""
        path = write_configuration(self.temp_dir, {OUTPUTCOMMITTER_FACTORY_CLASS: STAGING_FACTORY},
                                   filename='staging.xml')
        config = load_configuration({CONFIGURATION_FILE_PROPERTY: path})
        self.assertEqual(config.committer, STAGING_FACTORY)

    def test_committer_property_overrides_file(self):
        """Test that the committer property wins over the file"""
        path = write_configuration(self.temp_dir, {OUTPUTCOMMITTER_FACTORY_CLASS: STAGING_FACTORY},
                                   filename='staging.xml')
        config = load_configuration({
            CONFIGURATION_FILE_PROPERTY: path,
            COMMITTER_PROPERTY: MAGIC_FACTORY,
        })
        self.assertEqual(config.committer, MAGIC_FACTORY)

    def test_unset_committer_property_ignored(self):
        """Test that a sentinel committer property falls back to the file"""
        path = write_configuration(self.temp_dir, {OUTPUTCOMMITTER_FACTORY_CLASS: STAGING_FACTORY},
                                   filename='staging.xml')
        config = load_configuration({
            CONFIGURATION_FILE_PROPERTY: path,
            COMMITTER_PROPERTY: UNSET_PROPERTY,
        })
        self.assertEqual(config.committer, STAGING_FACTORY)

    def test_load_is_idempotent(self):
        """Test that loading twice gives equal configurations"""
        environ = {CONFIGURATION_FILE_PROPERTY: self.path, COMMITTER_PROPERTY: MAGIC_FACTORY}
        first = load_configuration(environ)
        second = load_configuration(environ)
        self.assertEqual(first, second)
        self.assertEqual(dict(first.items()), dict(second.items()))

    def test_load_logged_once(self):
        """Test that only the first load is announced"""
        with self.assertLogs('cloud_suite.configuration', level='INFO') as logs:
            load_configuration({CONFIGURATION_FILE_PROPERTY: self.path})
            load_configuration({CONFIGURATION_FILE_PROPERTY: self.path})
        loaded = [line for line in logs.output if 'Loading configuration from' in line]
        self.assertEqual(len(loaded), 1)
        self.assertIn(self.path, loaded[0])

    def test_concurrent_loads_logged_once(self):
        """Test that concurrent first loads are announced exactly once"""
        environ = {CONFIGURATION_FILE_PROPERTY: self.path}
        thread_count = 8
        barrier = threading.Barrier(thread_count)
        results = []

        def load():
            barrier.wait()
            results.append(load_configuration(environ))

        with self.assertLogs('cloud_suite.configuration', level='INFO') as logs:
            threads = [threading.Thread(target=load) for _ in range(thread_count)]
            for thread in threads:
                thread.start()
            for thread in threads:
                thread.join()

        loaded = [line for line in logs.output if 'Loading configuration from' in line]
        self.assertEqual(len(loaded), 1)
        self.assertEqual(len(results), thread_count)
        self.assertTrue(all(result == results[0] for result in results))

    def test_committer_change_logged(self):
        """Test that a non-default committer is logged"""
        with self.assertLogs('cloud_suite.configuration', level='INFO') as logs:
            load_configuration({
                CONFIGURATION_FILE_PROPERTY: self.path,
                COMMITTER_PROPERTY: MAGIC_FACTORY,
            })
        self.assertTrue(any(f"Using committer {MAGIC_FACTORY}" in line for line in logs.output))


class TestReadConfigurationFile(unittest.TestCase):
    """Test cases for parsing configuration files"""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def _write(self, text):
        path = os.path.join(self.temp_dir, 'config.xml')
        with open(path, 'w') as f:
            f.write(text)
        return path

    def test_single_property(self):
        path = self._write(
            '<configuration><property><name>a</name><value>1</value></property></configuration>')
        self.assertEqual(read_configuration_file(path), {'a': '1'})

    def test_multiple_properties(self):
        path = write_configuration(self.temp_dir, {'a': '1', 'b': '2', 'c': '3'})
        self.assertEqual(read_configuration_file(path), {'a': '1', 'b': '2', 'c': '3'})

    def test_empty_configuration(self):
        self.assertEqual(read_configuration_file(self._write('<configuration/>')), {})
        self.assertEqual(read_configuration_file(self._write('<configuration>\n</configuration>')), {})

    def test_value_whitespace_preserved(self):
        """Test that values are returned untrimmed"""
        path = write_configuration(self.temp_dir, {'padded': '  value  '})
        self.assertEqual(read_configuration_file(path)['padded'], '  value  ')

    def test_missing_value(self):
        path = self._write(
            '<configuration><property><name>a</name><value/></property>'
            '<property><name>b</name></property></configuration>')
        self.assertEqual(read_configuration_file(path), {'a': '', 'b': ''})

    def test_description_ignored(self):
        path = self._write(
            '<configuration><property><name>a</name><value>1</value>'
            '<description>the a option</description><final>true</final>'
            '</property></configuration>')
        self.assertEqual(read_configuration_file(path), {'a': '1'})

    def test_invalid_xml(self):
        path = self._write('<configuration><property>')
        with self.assertRaises(ConfigurationError):
            read_configuration_file(path)

    def test_wrong_root(self):
        path = self._write('<settings><property><name>a</name></property></settings>')
        with self.assertRaises(ConfigurationError) as context:
            read_configuration_file(path)
        self.assertIn('<configuration>', str(context.exception))


class TestSuiteConfiguration(unittest.TestCase):
    """Test cases for configuration accessors"""

    def setUp(self):
        self.config = SuiteConfiguration({
            'name': '  value  ',
            'count': ' 42 ',
            'bad-count': 'many',
            'flag': 'TRUE',
            'off': 'false',
        }, source='/tmp/config.xml')

    def test_get(self):
        self.assertEqual(self.config.get('name'), '  value  ')
        self.assertIsNone(self.config.get('missing'))
        self.assertEqual(self.config.get('missing', 'fallback'), 'fallback')

    def test_get_trimmed(self):
        self.assertEqual(self.config.get_trimmed('name'), 'value')
        self.assertIsNone(self.config.get_trimmed('missing'))

    def test_get_int(self):
        self.assertEqual(self.config.get_int('count', 1), 42)
        self.assertEqual(self.config.get_int('missing', 7), 7)
        with self.assertRaises(ConfigurationError):
            self.config.get_int('bad-count', 1)

    def test_get_boolean(self):
        self.assertTrue(self.config.get_boolean('flag', False))
        self.assertFalse(self.config.get_boolean('off', True))
        self.assertTrue(self.config.get_boolean('name', True))

    def test_mapping_protocol(self):
        self.assertIn('name', self.config)
        self.assertNotIn('missing', self.config)
        self.assertEqual(len(self.config), 5)
        self.assertEqual(set(self.config), {'name', 'count', 'bad-count', 'flag', 'off'})

    def test_immutable(self):
        with self.assertRaises(TypeError):
            self.config.options['name'] = 'changed'

    def test_equality_without_hashing(self):
        self.assertEqual(SuiteConfiguration({'a': '1'}), SuiteConfiguration({'a': '1'}))
        self.assertNotEqual(SuiteConfiguration({'a': '1'}), SuiteConfiguration({'a': '2'}))
        self.assertIsNone(SuiteConfiguration.__hash__)
        with self.assertRaises(TypeError):
            hash(self.config)

    def test_with_options_copies(self):
        updated = self.config.with_options({'name': 'changed', 'new': 'added'})
        self.assertEqual(updated.get('name'), 'changed')
        self.assertEqual(updated.get('new'), 'added')
        self.assertEqual(updated.source, self.config.source)
        self.assertEqual(self.config.get('name'), '  value  ')
        self.assertNotIn('new', self.config)


class TestOverlayConfiguration(unittest.TestCase):
    """Test cases for overlaying properties onto a configuration"""

    def test_overlay(self):
        config = SuiteConfiguration({'a': '1', 'b': '2', 'c': '3'})
        overlaid = overlay_configuration(config, ['a', 'b', 'c'], {
            'a': 'from-env',
            'b': UNSET_PROPERTY,
        })
        self.assertEqual(overlaid.get('a'), 'from-env')
        self.assertEqual(overlaid.get('b'), '2')
        self.assertEqual(overlaid.get('c'), '3')
        self.assertEqual(config.get('a'), '1')

    def test_overlay_only_named_keys(self):
        config = SuiteConfiguration({'a': '1'})
        overlaid = overlay_configuration(config, ['a'], {'a': 'x', 'z': 'y'})
        self.assertNotIn('z', overlaid)


class TestLoadEnvironment(unittest.TestCase):
    """Test cases for loading a .env file"""

    def setUp(self):
        """Set up a working directory holding a .env file"""
        self.temp_dir = tempfile.mkdtemp()
        with open(os.path.join(self.temp_dir, '.env'), 'w') as f:
            f.write(f'{COMMITTER_PROPERTY}=from-dotenv\n')
            f.write('CLOUD_SUITE_DOTENV_ONLY=from-dotenv\n')
        self.cwd = os.getcwd()
        os.chdir(self.temp_dir)

    def tearDown(self):
        """Clean up test environment"""
        os.chdir(self.cwd)
        shutil.rmtree(self.temp_dir)

    def test_environment_wins(self):
        """Test that variables already set are not replaced by the .env file"""
        with patch.dict(os.environ, {COMMITTER_PROPERTY: 'from-environment'}):
            os.environ.pop('CLOUD_SUITE_DOTENV_ONLY', None)
            self.assertTrue(load_environment())
            self.assertEqual(os.environ[COMMITTER_PROPERTY], 'from-environment')
            self.assertEqual(os.environ['CLOUD_SUITE_DOTENV_ONLY'], 'from-dotenv')
        self.assertNotIn('CLOUD_SUITE_DOTENV_ONLY', os.environ)


class TestOnceFlag(unittest.TestCase):

    def test_get_and_set(self):
        flag = OnceFlag()
        self.assertFalse(flag.is_set)
        self.assertFalse(flag.get_and_set())
        self.assertTrue(flag.get_and_set())
        self.assertTrue(flag.is_set)


if __name__ == '__main__':
    unittest.main()
