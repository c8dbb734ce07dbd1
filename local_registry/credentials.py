HTPASSWD = 'htpasswd'


def htpasswd_command(user, password):
    # -B bcrypt, -b password on the command line, -n print instead of updating a file
    return [HTPASSWD, '-Bbn', user, password]


def write_credentials(workdir, user, password):
    """
    Write the bcrypt htpasswd file the registry container reads, plus a
    plaintext copy for whoever has to debug a failing login.
    """
    hashed = workdir.must_pass(htpasswd_command(user, password))
    with open(workdir.htpasswd_path, 'w') as f:
        f.write(hashed.strip() + '\n')
    with open(workdir.plaintext_path, 'w') as f:
        f.write(f"{user}:{password}\n")
