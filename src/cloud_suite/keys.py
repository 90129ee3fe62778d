"""
Property names, configuration keys and option bundles for cloud test suites.
"""

# Environment properties
CONFIGURATION_FILE_PROPERTY = 'CLOUD_TEST_CONFIGURATION_FILE'
COMMITTER_PROPERTY = 'CLOUD_TEST_COMMITTER'

# A property set to this value is treated as if it were not set at all
UNSET_PROPERTY = 'unset'

# Committer selection
OUTPUTCOMMITTER_FACTORY_CLASS = 'mapreduce.outputcommitter.factory.class'
OUTPUTCOMMITTER_FACTORY_DEFAULT = 'org.apache.hadoop.mapreduce.lib.output.FileOutputCommitterFactory'
STAGING = 'org.apache.hadoop.fs.s3a.commit.staging'

# Scale tests
SCALE_TEST_SIZE_FACTOR = 'scale.test.size.factor'
SCALE_TEST_SIZE_FACTOR_DEFAULT = 100

# Root of every suite's test directory; the suite class name is appended
TEST_DIR_ROOT = '/spark-cloud'

# Filesystem binding
FS_DEFAULT_NAME_KEY = 'fs.defaultFS'
LOCAL_SCHEME = 'file'

# S3A tuning
BLOCK_SIZE = 'fs.s3a.block.size'
MULTIPART_SIZE = 'fs.s3a.multipart.size'
MIN_MULTIPART_THRESHOLD = 'fs.s3a.multipart.threshold'
READAHEAD_RANGE = 'fs.s3a.readahead.range'
FAST_UPLOAD = 'fs.s3a.fast.upload'
FAST_UPLOAD_BUFFER = 'fs.s3a.fast.upload.buffer'
FAST_UPLOAD_BUFFER_ARRAY = 'array'
MIN_PERMITTED_MULTIPART_SIZE = 5 * 1024 * 1024  # 5MB

# Credentials, mapped onto fsspec storage options
S3A_ACCESS_KEY = 'fs.s3a.access.key'
S3A_SECRET_KEY = 'fs.s3a.secret.key'
S3A_SESSION_TOKEN = 'fs.s3a.session.token'
S3A_ENDPOINT = 'fs.s3a.endpoint'
S3A_ENDPOINT_REGION = 'fs.s3a.endpoint.region'
GS_PROJECT_ID = 'fs.gs.project.id'
GS_KEYFILE = 'fs.gs.auth.service.account.json.keyfile'
AZURE_ACCOUNT_KEY_PREFIX = 'fs.azure.account.key.'

# Test bucket for the S3A suites
S3A_TEST_URI = 's3a.tests.uri'

SPARK_HADOOP_PREFIX = 'spark.hadoop.'

MR_ALGORITHM_VERSION = 'mapreduce.fileoutputcommitter.algorithm.version'
MR_COMMITTER_CLEANUP_FAILURES_IGNORED = 'mapreduce.fileoutputcommitter.cleanup-failures.ignored'

MAPREDUCE_OPTIONS = {
    SPARK_HADOOP_PREFIX + MR_ALGORITHM_VERSION: '2',
    SPARK_HADOOP_PREFIX + MR_COMMITTER_CLEANUP_FAILURES_IGNORED: 'true',
}

ORC_OPTIONS = {
    'spark.hadoop.orc.splits.include.file.footer': 'true',
    'spark.hadoop.orc.cache.stripe.details.size': '1000',
    'spark.hadoop.orc.filterPushdown': 'true',
}

PARQUET_OPTIONS = {
    'spark.sql.parquet.mergeSchema': 'false',
    'spark.sql.parquet.filterPushdown': 'true',
}
