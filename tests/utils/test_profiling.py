import asyncio
import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from dirdup.utils.processor import Processor
from dirdup.utils.profiling import PROFILE_ENVIRONMENT_VARIABLE, get_profile_dir, profile_main


class ProfilingTest(unittest.TestCase):
    def test_disabled_without_environment_variable(self):
        with mock.patch.dict(os.environ):
            os.environ.pop(PROFILE_ENVIRONMENT_VARIABLE, None)
            self.assertIsNone(get_profile_dir())

            @profile_main
            def command():
                return 7

            self.assertEqual(7, command())

    def test_one_dump_per_process(self):
        with tempfile.TemporaryDirectory() as tmpdir, \
                mock.patch.dict(os.environ, {PROFILE_ENVIRONMENT_VARIABLE: tmpdir}):
            data_file = Path(tmpdir) / 'file.bin'
            data_file.write_bytes(b'z' * 3000)

            async def fingerprint_many(processor):
                for _ in range(5):
                    await processor.fingerprint(data_file, 3000, 1024)

            @profile_main
            def command():
                with Processor(1) as processor:
                    asyncio.run(fingerprint_many(processor))

            command()

            sessions = [p for p in Path(tmpdir).iterdir() if p.is_dir()]
            self.assertEqual(1, len(sessions))
            names = sorted(p.name for p in sessions[0].iterdir())
            self.assertEqual(2, len(names))
            self.assertTrue(names[0].startswith('main_'))
            self.assertTrue(names[1].startswith('worker_'))


if __name__ == '__main__':
    unittest.main()
