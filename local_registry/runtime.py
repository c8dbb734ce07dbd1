import shlex

CONTAINER_NAME = 'registry'
CONTAINER_PORT = 5000
AUTH_MOUNT = '/auth'
HTPASSWD_REALM = 'Registry Realm'


class ContainerRuntime:
    """Builds runtime command lines bound to one instance's storage roots"""

    def __init__(self, workdir):
        self.workdir = workdir
        self.executable = shlex.split(workdir.runtime)

    def command(self, *args):
        """Runtime invocation with --root/--runroot pointing into the workdir"""
        return self.executable + [
            '--root', self.workdir.root,
            '--runroot', self.workdir.runroot,
        ] + list(args)

    def pull(self, image):
        return self.command('pull', image)

    def run_registry(self, image, port):
        env = {
            'REGISTRY_AUTH': 'htpasswd',
            'REGISTRY_AUTH_HTPASSWD_REALM': HTPASSWD_REALM,
            'REGISTRY_AUTH_HTPASSWD_PATH': f'{AUTH_MOUNT}/htpasswd',
            'REGISTRY_HTTP_TLS_CERTIFICATE': f'{AUTH_MOUNT}/domain.crt',
            'REGISTRY_HTTP_TLS_KEY': f'{AUTH_MOUNT}/domain.key',
        }
        args = ['run', '--quiet', '-d',
                '--name', CONTAINER_NAME,
                '-p', f'{port}:{CONTAINER_PORT}',
                '-v', f'{self.workdir.auth_dir}:{AUTH_MOUNT}:Z']
        for key, value in env.items():
            args += ['-e', f'{key}={value}']
        args.append(image)
        return self.command(*args)

    def stop(self):
        return self.command('stop', CONTAINER_NAME)

    def remove(self):
        return self.command('rm', '-f', CONTAINER_NAME)

    def ps(self):
        return self.command('ps', '-a')

    def logs(self):
        return self.command('logs', CONTAINER_NAME)

    def unshare_remove_storage(self):
        """
        Delete the storage roots from inside the rootless user namespace;
        they can hold files owned by mapped UIDs the caller cannot remove.
        """
        return self.executable + ['unshare', 'rm', '-rf',
                                  self.workdir.root, self.workdir.runroot]
