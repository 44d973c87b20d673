def register_user(client, phone="09121234567", password="secret123", first_name="Sara", last_name="Ahmadi"):
    return client.post("/auth/register", json={
        "phone": phone, "password": password, "firstName": first_name, "lastName": last_name,
    })


def login_user(client, phone="09121234567", password="secret123"):
    return client.post("/auth/login", json={"phone": phone, "password": password})
