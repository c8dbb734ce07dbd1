OPENSSL = 'openssl'
SUBJECT_ALT_NAME = 'subjectAltName=DNS:localhost'


def certificate_command(workdir, days, bits, subject):
    """openssl invocation for a self-signed certificate with an unencrypted key"""
    return [
        OPENSSL, 'req',
        '-newkey', f'rsa:{bits}',
        '-nodes', '-sha256',
        '-keyout', workdir.key_path,
        '-x509', '-days', str(days),
        '-out', workdir.cert_path,
        '-subj', subject,
        '-addext', SUBJECT_ALT_NAME,
    ]


def generate_certificate(workdir, config):
    """Write auth/domain.crt and auth/domain.key for the registry's TLS listener"""
    workdir.must_pass(certificate_command(workdir, config.cert_days, config.cert_bits, config.cert_subject))
